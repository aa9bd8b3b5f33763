"""Base provider interface."""

from __future__ import annotations

import abc
import asyncio
from typing import List, Optional

from ..contracts import CreateRequest, ForgedApplication
from ..errors import ForgeTimeoutError, SuperkeyError
from .substitution import generate_guid


class BaseProvider(metaclass=abc.ABCMeta):
    """Abstract orchestrator for one cloud provider.

    A provider instance is built per request from the tenant's own
    credential and is never shared.
    """

    name: str = ""

    def __init__(self, forge_timeout: Optional[float] = None) -> None:
        self.forge_timeout = forge_timeout

    def new_application(self, request: CreateRequest) -> ForgedApplication:
        return ForgedApplication(guid=generate_guid(), request=request, client=self)

    @abc.abstractmethod
    async def forge(self, forged: ForgedApplication) -> None:
        """Provision resources, recording each finished step on ``forged``.

        Raises on the first failure; whatever was recorded so far stays on
        ``forged`` for teardown.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def tear_down(self, forged: ForgedApplication) -> List[Exception]:
        """Undo every recorded step, returning the errors encountered."""
        raise NotImplementedError

    async def forge_application(self, request: CreateRequest) -> ForgedApplication:
        """Forge ``request`` and return the application, successful or not.

        On failure ``error`` is set on the returned application and
        ``steps_completed`` holds exactly the steps that finished.
        """
        forged = self.new_application(request)
        try:
            if self.forge_timeout:
                await asyncio.wait_for(self.forge(forged), self.forge_timeout)
            else:
                await self.forge(forged)
        except asyncio.TimeoutError:
            forged.error = ForgeTimeoutError(
                f"forging did not finish within {self.forge_timeout} seconds"
            )
        except SuperkeyError as exc:
            forged.error = exc
        return forged
