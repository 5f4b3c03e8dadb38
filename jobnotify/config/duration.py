"""Duration strings used by the config (``30s``, ``5m``, ``7d``, ``PT5M``, ``P7D``)."""

import re

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_HUMAN_PATTERN = re.compile(r"^(\d+)\s*([smhd])$", re.IGNORECASE)
_ISO_PATTERN = re.compile(
    r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$", re.IGNORECASE
)


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(value: str) -> int:
    """Parse a duration string into whole seconds.

    Examples:
        >>> parse_duration("7d")
        604800
        >>> parse_duration("PT5M")
        300

    Raises:
        DurationParseError: If the string is empty, malformed or zero
    """
    text = (value or "").strip()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    if text.upper().startswith("P"):
        match = _ISO_PATTERN.match(text)
        if not match or not any(match.groups()):
            raise DurationParseError(
                f"Invalid ISO-8601 duration: '{value}'. Expected e.g. 'P7D' or 'PT30M'"
            )
        days, hours, minutes, seconds = (int(g or 0) for g in match.groups())
        total = days * 86400 + hours * 3600 + minutes * 60 + seconds
    else:
        match = _HUMAN_PATTERN.match(text)
        if not match:
            raise DurationParseError(
                f"Invalid duration: '{value}'. Expected e.g. '30s', '5m', '1h' or '7d'"
            )
        total = int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]

    if total <= 0:
        raise DurationParseError(f"Duration must be positive, got '{value}'")
    return total
