"""
# Logging Manager

Provides `get_logger()`, the single entry point for application loggers.

Every component asks for a logger with an optional message prefix so that log lines
can be grepped by subsystem:

```python
from pulse_admin.managers.logging_manager import get_logger

logger = get_logger(prefix="[ReflectionService]")
logger.info("Created reflection %s", reflection_id)
# -> 2025-01-03 10:00:00 | INFO | PulseAdmin | [ReflectionService] Created reflection 01-03-2025-general
```

Handlers are attached once to the root application logger; level comes from
`settings.LOG_LEVEL`.
"""

import logging
import sys
from typing import Any, MutableMapping, Tuple

from pulse_admin.config import settings

DEFAULT_LOGGER_NAME = "PulseAdmin"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


class PrefixedLoggerAdapter(logging.LoggerAdapter):
    """Prepends a fixed prefix such as `[DATABASE]` to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        super().__init__(logger, {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs


def _configure_root(name: str) -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger(name)
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str = DEFAULT_LOGGER_NAME, prefix: str = "") -> PrefixedLoggerAdapter:
    """
    Return a logger for the given name, prefixing every message with `prefix`.

    Names other than the default become children of the application logger
    (`PulseAdmin.<name>`) so they share its handler and level.
    """
    _configure_root(DEFAULT_LOGGER_NAME)
    if name != DEFAULT_LOGGER_NAME and not name.startswith(f"{DEFAULT_LOGGER_NAME}."):
        name = f"{DEFAULT_LOGGER_NAME}.{name}"
    return PrefixedLoggerAdapter(logging.getLogger(name), prefix)
