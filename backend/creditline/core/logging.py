"""Logging configuration.

Provides the ``ContextualLogger`` used across the backend. Dimensions attached via
``with_context`` travel with every record (as ``extra`` fields) so tenant and
request identity show up on each log line.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

from creditline.core.config import settings


class _DimensionFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` pairs for the record's dimensions."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = getattr(record, "dimensions", None)
        if not dims:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in sorted(dims.items()))
        return f"{base} [{rendered}]"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying a dictionary of dimensions and an optional prefix."""

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[dict[str, Any]] = None,
        prefix: str = "",
    ) -> None:
        """Wrap ``logger`` with the given dimensions."""
        super().__init__(logger, {})
        self.dimensions: dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, Any]:
        """Inject dimensions into ``extra`` and apply the prefix."""
        extra = dict(kwargs.get("extra") or {})
        extra["dimensions"] = {**self.dimensions, **extra.get("dimensions", {})}
        kwargs["extra"] = extra
        if self.prefix:
            msg = f"{self.prefix}{msg}"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions}, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a new logger that prefixes every message."""
        return ContextualLogger(self.logger, self.dimensions, prefix)


def _configure_root_logger() -> logging.Logger:
    base = logging.getLogger("creditline")
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            _DimensionFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        base.addHandler(handler)
    base.setLevel(settings.LOG_LEVEL.upper())
    return base


logger = ContextualLogger(_configure_root_logger())
