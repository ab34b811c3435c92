"""Structured logging helpers shared by every component."""

import logging
from typing import Optional


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps a component name on every record.

    Fields passed through ``extra`` at the call site win over the adapter's
    defaults, so a call can still override ``component`` if it needs to.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Return a module logger, optionally bound to a component label.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier added to every record (e.g. "scheduler")

    Returns:
        Logger, or ComponentLoggerAdapter when a component is given

    Example:
        >>> logger = get_logger(__name__, component="pipeline")
        >>> logger.info("Cycle started", extra={"event": "alert.cycle.started"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
