"""Single-deployment provider for Azure."""

from __future__ import annotations

import logging
import tempfile
from typing import List, Optional

from ..cloud.azure import AzCli, CommandRunner, run_command
from ..config import AzureConfig
from ..constants import PROVIDER_AZURE, STEP_AZ_LIGHTHOUSE
from ..contracts import ForgedApplication
from ..errors import DeploymentError, StepExecutionError
from ..log import request_logger
from ..teardown import TeardownSaga
from .base import BaseProvider
from .templates import AzureTemplateStore

logger = logging.getLogger(__name__)


class AzureProvider(BaseProvider):
    """Provisions access with one templated subscription deployment.

    Each operation runs inside a scratch home directory for the CLI's
    credentials, removed afterwards whatever happened, and between a login
    and a logout.
    """

    name = PROVIDER_AZURE

    def __init__(
        self,
        username: str,
        password: str,
        tenant: str,
        templates: AzureTemplateStore,
        config: Optional[AzureConfig] = None,
        runner: CommandRunner = run_command,
        forge_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(forge_timeout=forge_timeout)
        self.username = username
        self._password = password
        self.tenant = tenant
        self._templates = templates
        self._config = config or AzureConfig()
        self._runner = runner
        self._saga = TeardownSaga([(STEP_AZ_LIGHTHOUSE, self._delete_deployment)])

    def _cli(self, home: str) -> AzCli:
        return AzCli(
            home,
            timeout=self._config.command_timeout,
            location=self._config.location,
            poll_interval=self._config.poll_interval,
            poll_attempts=self._config.poll_attempts,
            runner=self._runner,
        )

    async def forge(self, forged: ForgedApplication) -> None:
        try:
            template_path = self._templates.require()
        except DeploymentError as exc:
            raise StepExecutionError(STEP_AZ_LIGHTHOUSE, exc, str(exc)) from exc

        log = request_logger(
            logger,
            tenant_id=forged.request.tenant_id,
            application_id=forged.request.application_id,
        )
        name = f"redhat-cloudmeter-{forged.guid}"
        # Recorded up front so a failed deployment is still cleaned up.
        forged.mark_completed(STEP_AZ_LIGHTHOUSE, {"name": name})

        try:
            with tempfile.TemporaryDirectory(prefix="az", ignore_cleanup_errors=True) as home:
                cli = self._cli(home)
                async with cli.session(self.username, self._password, self.tenant):
                    subscription_id = await cli.deploy_subscription_template(
                        name, template_path
                    )
        except DeploymentError as exc:
            raise StepExecutionError(STEP_AZ_LIGHTHOUSE, exc, str(exc)) from exc
        except Exception as exc:
            raise StepExecutionError(STEP_AZ_LIGHTHOUSE, exc) from exc

        forged.mark_completed(
            STEP_AZ_LIGHTHOUSE, {"name": name, "subscriptionID": subscription_id}
        )
        log.info(f'Deployment "{name}" created in subscription "{subscription_id}"')
        forged.create_payload(subscription_id)

    async def tear_down(self, forged: ForgedApplication) -> List[Exception]:
        return await self._saga.run(forged)

    async def _delete_deployment(self, forged: ForgedApplication) -> None:
        name = forged.steps_completed[STEP_AZ_LIGHTHOUSE].get("name", "")
        with tempfile.TemporaryDirectory(prefix="az", ignore_cleanup_errors=True) as home:
            cli = self._cli(home)
            async with cli.session(self.username, self._password, self.tenant):
                await cli.delete_deployment(name)
