"""Error taxonomy for the superkey worker."""

from __future__ import annotations

from typing import List, Optional


class SuperkeyError(Exception):
    """Base class for all superkey errors."""


class ValidationError(SuperkeyError):
    """An inbound message could not be decoded into a request."""


class UnsupportedProviderError(SuperkeyError):
    def __init__(self, provider: str) -> None:
        super().__init__(f'unsupported auth provider "{provider}"')
        self.provider = provider


class MissingCredentialError(SuperkeyError):
    """The tenant credential came back without an identity or secret."""

    def __init__(
        self,
        credential_id: str,
        authentication_id: Optional[str] = None,
        missing: str = "username or password",
    ) -> None:
        super().__init__(
            f'missing {missing} from authentication ID "{authentication_id}" '
            f'and superkey credential "{credential_id}"'
        )
        self.credential_id = credential_id
        self.authentication_id = authentication_id


class StepExecutionError(SuperkeyError):
    """A cloud operation backing a step failed."""

    def __init__(self, step_name: str, cause: BaseException, message: Optional[str] = None) -> None:
        super().__init__(message or f'step "{step_name}" failed: {cause}')
        self.step_name = step_name
        self.cause = cause


class UnimplementedStepError(SuperkeyError):
    def __init__(self, step_name: str) -> None:
        super().__init__(f'superkey step "{step_name}" not implemented')
        self.step_name = step_name


class ReportingError(SuperkeyError):
    """A call to the inventory service did not succeed."""

    def __init__(
        self,
        operation: str,
        status_code: Optional[int] = None,
        body: str = "",
        cause: Optional[BaseException] = None,
        detail: Optional[str] = None,
    ) -> None:
        if detail is not None:
            message = f"{operation}: {detail}"
        elif status_code is None:
            message = f"{operation}: failed to send request: {cause}"
        else:
            message = (
                f'{operation}: unexpected status code received. Want "2xx", got '
                f'"{status_code}". Response body: {body}'
            )
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.body = body
        self.cause = cause


class DeploymentError(SuperkeyError):
    """A templated subscription deployment did not succeed."""


class ResourceNotFoundError(SuperkeyError):
    """The cloud resource to delete does not exist (any more)."""


class ForgeTimeoutError(SuperkeyError):
    """Forging did not finish before the configured deadline."""


class TeardownError(SuperkeyError):
    """Aggregate of every error collected while tearing down."""

    def __init__(self, errors: List[BaseException]) -> None:
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} teardown error(s): {details}")
