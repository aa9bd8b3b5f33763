"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional, Tuple

FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=FORMAT, force=True)


class RequestLogAdapter(logging.LoggerAdapter):
    """Prefix messages with the identifiers of the request being handled."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = " ".join(f"{k}={v}" for k, v in self.extra.items() if v)
        if fields:
            msg = f"[{fields}] {msg}"
        return msg, kwargs


def request_logger(
    logger: Optional[logging.Logger] = None, **fields: Any
) -> RequestLogAdapter:
    return RequestLogAdapter(logger or logging.getLogger("superkey"), fields)
