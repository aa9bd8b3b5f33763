"""Deployment template used by the Azure provider."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict

from ..config import AzureConfig
from ..errors import DeploymentError

logger = logging.getLogger(__name__)


class CloudigradeSysConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    aws_account_id: Optional[str] = None
    azure_offer_template_path: str = ""
    version: Optional[str] = None


class AzureTemplateStore:
    """Keeps the subscription deployment template on local disk.

    The template is fetched from the metering service at startup, or copied
    from a locally mounted file when the service is not configured.
    """

    def __init__(
        self,
        config: AzureConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def path(self) -> str:
        return self._config.template_path

    def is_available(self) -> bool:
        return os.path.isfile(self.path)

    def require(self) -> str:
        if not self.is_available():
            raise DeploymentError(
                "azure deployment template is not available - resource creation impossible"
            )
        return self.path

    async def fetch_remote(self) -> None:
        base = self._config.cloudigrade_url
        if not base or not self._config.sysconfig_path:
            raise DeploymentError("metering service URL or sysconfig path not configured")

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            logger.info(f"Fetching sysconfig from [{base}{self._config.sysconfig_path}]")
            response = await client.get(f"{base}{self._config.sysconfig_path}")
            response.raise_for_status()
            sysconfig = CloudigradeSysConfig.model_validate_json(response.content)

            logger.info(
                f"Fetching azure template from [{base}{sysconfig.azure_offer_template_path}]"
            )
            response = await client.get(f"{base}{sysconfig.azure_offer_template_path}")
            response.raise_for_status()

        with open(self.path, "w") as f:
            f.write(response.text)

    def copy_local(self) -> None:
        if self.is_available():
            return
        source = self._config.local_template_path
        if not source or not os.path.isfile(source):
            raise DeploymentError("failed to open default template (not mounted)")
        logger.info(f"Copying [{source}] to [{self.path}]")
        shutil.copyfile(source, self.path)

    async def ensure(self) -> bool:
        """Make the template available, returning whether that worked."""
        if self._config.cloudigrade_url:
            try:
                await self.fetch_remote()
                return True
            except (httpx.HTTPError, DeploymentError, ValueError) as exc:
                logger.error(f"Failed to fetch azure template: {exc}")
        try:
            self.copy_local()
        except (DeploymentError, OSError) as exc:
            logger.error(f"Failed to copy local azure template: {exc}")
        return self.is_available()
