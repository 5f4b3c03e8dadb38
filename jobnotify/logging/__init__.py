"""Structured logging helpers shared by every component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """Adapter that stamps a fixed ``component`` on each record.

    Fields passed through ``extra=`` at the call site win over the adapter's own.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Return a module logger, optionally bound to a component name.

    Example:
        >>> logger = get_logger(__name__, component="delivery")
        >>> logger.info("Message sent", extra={"event": "delivery.sent"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
