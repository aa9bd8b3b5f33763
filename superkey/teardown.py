"""Best-effort compensation of provisioned resources."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Sequence, Tuple

from .contracts import ForgedApplication
from .errors import ResourceNotFoundError, StepExecutionError, SuperkeyError
from .log import request_logger

logger = logging.getLogger(__name__)

Compensation = Callable[[ForgedApplication], Awaitable[None]]


class TeardownSaga:
    """Runs compensations in a fixed order over whatever steps completed.

    The order is independent of the order the steps were created in. Every
    compensation is attempted even if an earlier one failed; the errors are
    collected and returned. A resource that is already gone counts as
    compensated, so running the saga twice is harmless.
    """

    def __init__(self, compensations: Sequence[Tuple[str, Compensation]]) -> None:
        self._compensations = tuple(compensations)

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self._compensations)

    async def run(self, forged: ForgedApplication) -> List[Exception]:
        log = request_logger(
            logger, tenant_id=forged.request.tenant_id, guid=forged.guid
        )
        errors: List[Exception] = []
        for step_name, compensate in self._compensations:
            if step_name not in forged.steps_completed:
                continue
            try:
                await compensate(forged)
            except ResourceNotFoundError as exc:
                log.info(f'Nothing to tear down for "{step_name}": {exc}')
            except Exception as exc:
                if not isinstance(exc, SuperkeyError):
                    exc = StepExecutionError(
                        step_name, exc, f'failed to tear down "{step_name}": {exc}'
                    )
                log.error(f'Teardown of "{step_name}" failed: {exc}')
                errors.append(exc)
            else:
                log.info(f'Tore down "{step_name}"')
        return errors
