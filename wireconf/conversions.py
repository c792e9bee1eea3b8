"""
wireconf.conversions
--------------------

Type conversions used when a configuration value is requested in a specific
representation (``"string"``, ``"number"``, ``"date"`` ...).

Every conversion is permissive: a value that cannot be represented as
requested converts to ``None`` rather than raising.
"""

import json
import logging
import numbers
from datetime import date, datetime, timezone
from typing import Any, NamedTuple, Optional
from urllib.parse import ParseResult, urlparse

from .utils import parse_value

log = logging.getLogger(__name__)


class Color(NamedTuple):
    """An RGBA colour with 0-255 channels."""

    red: int
    green: int
    blue: int
    alpha: int = 255

    def to_hex(self) -> str:
        if self.alpha == 255:
            return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}{self.alpha:02x}"


NAMED_COLORS = {
    "black": Color(0, 0, 0),
    "white": Color(255, 255, 255),
    "red": Color(255, 0, 0),
    "green": Color(0, 128, 0),
    "blue": Color(0, 0, 255),
    "yellow": Color(255, 255, 0),
    "gray": Color(128, 128, 128),
    "grey": Color(128, 128, 128),
    "transparent": Color(0, 0, 0, 0),
}


REPRESENTATIONS = ("string", "number", "boolean", "date", "url", "data", "json", "color")


class TypeConversions:
    """Default conversion service handed to root configurations."""

    def as_representation(self, value: Any, representation: str) -> Any:
        """
        Convert a value to the named representation.

        Args:
            value: The resolved configuration value.
            representation: The representation name.

        Returns:
            The converted value, or None if no conversion applies.
        """
        if value is None:
            return None
        converter = None
        if representation in REPRESENTATIONS:
            converter = getattr(self, f"as_{representation}")
        if converter is None:
            log.debug("No conversion to representation '%s' for %s", representation, type(value).__name__)
            return None
        return converter(value)

    def as_string(self, value: Any) -> Optional[str]:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, numbers.Number):
            return str(value)
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return None
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return str(value)

    def as_number(self, value: Any) -> Optional[numbers.Number]:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, numbers.Number):
            return value
        if isinstance(value, str):
            parsed = parse_value(value)
            if isinstance(parsed, numbers.Number) and not isinstance(parsed, bool):
                return parsed
        return None

    def as_boolean(self, value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if isinstance(value, numbers.Number):
            return value != 0
        if isinstance(value, str):
            parsed = parse_value(value)
            if isinstance(parsed, bool):
                return parsed
            if isinstance(parsed, numbers.Number):
                return parsed != 0
        return None

    def as_date(self, value: Any) -> Optional[datetime]:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, numbers.Number) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                log.debug("Timestamp %r out of range", value)
                return None
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError:
                number = self.as_number(value)
                if number is not None:
                    return self.as_date(number)
        return None

    def as_url(self, value: Any) -> Optional[ParseResult]:
        if isinstance(value, ParseResult):
            return value
        if isinstance(value, str) and value:
            return urlparse(value)
        return None

    def as_data(self, value: Any) -> Optional[bytes]:
        if isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (dict, list)):
            return json.dumps(value).encode("utf-8")
        return None

    def as_json(self, value: Any) -> Any:
        return self.as_json_data(value)

    def as_json_data(self, value: Any) -> Any:
        """Parse JSON text (str or bytes) into data; other values pass through."""
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError:
                return value
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value

    def as_color(self, value: Any) -> Optional[Color]:
        """
        Convert a colour description to a ``Color``.

        Accepts ``Color`` instances, named colours and hex strings in the
        forms ``#rgb``, ``#rrggbb`` and ``#rrggbbaa``. The leading ``#`` is
        optional.
        """
        if isinstance(value, Color):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip().lower()
        if text in NAMED_COLORS:
            return NAMED_COLORS[text]
        text = text.lstrip("#")
        if len(text) == 3:
            text = "".join(c * 2 for c in text)
        if len(text) not in (6, 8):
            return None
        try:
            channels = [int(text[i:i + 2], 16) for i in range(0, len(text), 2)]
        except ValueError:
            return None
        return Color(*channels)
