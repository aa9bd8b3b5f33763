"""Azure adapter driving the ``az`` command line tool."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import DeploymentError

logger = logging.getLogger(__name__)

SUBSCRIPTION_ID_PATTERN = re.compile(r"/subscriptions/(.*)/providers/")
EMBEDDED_ERROR_PATTERN = re.compile(r"{.*}")

TERMINAL_STATES = frozenset({"Succeeded", "Failed", "Canceled"})


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


CommandRunner = Callable[[Sequence[str], Mapping[str, str], float], Awaitable[CommandResult]]


async def run_command(
    args: Sequence[str], env: Mapping[str, str], timeout: float
) -> CommandResult:
    """Run ``args`` and kill it once ``timeout`` seconds have passed."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env),
        )
    except OSError as exc:
        raise DeploymentError(f"failed to run [{' '.join(args[:4])}]: {exc}") from exc
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise DeploymentError(
            f"[{' '.join(args[:4])}] timed out after {timeout} seconds"
        ) from None
    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


class DeploymentErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str = ""
    message: str = ""


class DeploymentErrorInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str = ""
    message: str = ""
    details: List[DeploymentErrorDetail] = Field(default_factory=list)


class DeploymentProperties(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    provisioning_state: Optional[str] = Field(default=None, alias="provisioningState")
    correlation_id: Optional[str] = Field(default=None, alias="correlationId")
    error: Optional[DeploymentErrorInfo] = None


class AzureDeployment(BaseModel):
    """Subset of ``az deployment sub show`` output the worker reads."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    location: Optional[str] = None
    properties: DeploymentProperties = Field(default_factory=DeploymentProperties)


def subscription_id_from(resource_id: str) -> str:
    """Extract the subscription uuid from a deployment resource path."""
    match = SUBSCRIPTION_ID_PATTERN.search(resource_id)
    return match.group(1) if match else ""


def error_message_from(message: str) -> str:
    """Pull the human readable message out of a JSON document embedded in ``message``."""
    match = EMBEDDED_ERROR_PATTERN.search(message)
    if not match:
        return ""
    try:
        document = json.loads(match.group(0))
    except ValueError:
        return ""
    try:
        return str(document["odata.error"]["message"]["value"])
    except (KeyError, TypeError):
        return ""


class AzCli:
    """Runs ``az`` with an isolated home directory holding its credentials."""

    def __init__(
        self,
        home_directory: str,
        timeout: float = 300,
        location: str = "WestUS",
        poll_interval: float = 5,
        poll_attempts: int = 12,
        runner: CommandRunner = run_command,
    ) -> None:
        self.home_directory = home_directory
        self.timeout = timeout
        self.location = location
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self._runner = runner

    def _env(self) -> Dict[str, str]:
        return {"HOME": self.home_directory, "PATH": os.environ.get("PATH", "")}

    async def _run(self, *args: str) -> CommandResult:
        return await self._runner(["az", *args], self._env(), self.timeout)

    async def login(self, username: str, password: str, tenant: str) -> None:
        logger.info("running [az login]")
        result = await self._run(
            "login",
            "--service-principal",
            f"--username={username}",
            f"--password={password}",
            f"--tenant={tenant}",
        )
        if result.returncode != 0:
            raise DeploymentError(f"failed to login with az credentials: {result.stderr.strip()}")

    async def logout(self) -> None:
        logger.info("running [az logout]")
        result = await self._run("logout")
        if result.returncode != 0:
            raise DeploymentError(f"failed to logout az cli: {result.stderr.strip()}")

    @asynccontextmanager
    async def session(self, username: str, password: str, tenant: str) -> AsyncIterator["AzCli"]:
        """Log in for the duration of the block and always log out afterwards."""
        await self.login(username, password, tenant)
        try:
            yield self
        except BaseException:
            try:
                await self.logout()
            except DeploymentError as exc:
                logger.warning(f"logout after failure did not succeed: {exc}")
            raise
        else:
            await self.logout()

    async def show_deployment(self, name: str) -> AzureDeployment:
        logger.info("running [az deployment sub show]")
        result = await self._run("deployment", "sub", "show", f"--name={name}")
        if result.returncode != 0:
            raise DeploymentError(
                f"failed to run [az deployment sub show] command: {result.stderr.strip()}"
            )
        try:
            return AzureDeployment.model_validate_json(result.stdout)
        except PydanticValidationError as exc:
            raise DeploymentError(f"failed to unmarshal subscription output: {exc}") from exc

    async def deploy_subscription_template(self, name: str, template_path: str) -> str:
        """Deploy ``template_path`` as ``name`` and return the subscription id."""
        logger.info("running [az deployment sub create]")
        # The exit status is ignored: the structured error is read back below.
        await self._run(
            "deployment",
            "sub",
            "create",
            f"--location={self.location}",
            f"--name={name}",
            f"--template-file={template_path}",
        )

        deployment = await self.show_deployment(name)
        for _ in range(max(0, self.poll_attempts - 1)):
            state = deployment.properties.provisioning_state
            if state is None or state in TERMINAL_STATES:
                break
            await asyncio.sleep(self.poll_interval)
            deployment = await self.show_deployment(name)

        error = deployment.properties.error
        if error is not None and error.code:
            message = error_message_from(error.details[0].message) if error.details else ""
            raise DeploymentError(f"error during deployment: {message or error.code}")

        state = deployment.properties.provisioning_state
        if state is not None and state not in TERMINAL_STATES:
            raise DeploymentError(f'deployment "{name}" still {state} after polling')
        if state is not None and state != "Succeeded":
            raise DeploymentError(f'deployment "{name}" ended in state {state}')

        subscription_id = subscription_id_from(deployment.id)
        if not subscription_id:
            raise DeploymentError(f"failed to parse uuid from subscription ID: {deployment.id}")
        return subscription_id

    async def delete_deployment(self, name: str) -> None:
        logger.info("running [az deployment sub delete]")
        result = await self._run("deployment", "sub", "delete", f"--name={name}")
        if result.returncode != 0:
            raise DeploymentError(
                f"failed to run [az deployment sub delete] command: {result.stderr.strip()}"
            )
