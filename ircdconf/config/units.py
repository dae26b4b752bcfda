"""Duration and byte-size parsing for config fields.

Two duration grammars are supported. The standard grammar accepts a sign and a
sequence of ``<number><unit>`` segments (``1h30m``, ``500ms``, ``.5s``) with
units ``ns``, ``us``/``µs``, ``ms``, ``s``, ``m`` and ``h``; a bare ``0`` is
also accepted. The custom grammar adds calendar-ish units on top: ``d`` (24h),
``w`` (7d), ``mo`` (30d) and ``y`` (365d).

Byte sizes are a positive number followed by ``B`` or ``K``/``M``/``G``/``T``
with an optional ``B`` or ``iB`` (``512K``, ``1MiB``, ``2.5GB``, ``.5K``). All
multiples are powers of 1024. Surrounding whitespace is allowed around a byte
size but not around a duration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import re
from types import MappingProxyType

from ircdconf.config.errors import ByteSizeParseError, DurationParseError


_NANOSECOND = 1
_MICROSECOND = 1000 * _NANOSECOND
_MILLISECOND = 1000 * _MICROSECOND
_SECOND = 1000 * _MILLISECOND
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR

STANDARD_DURATION_UNITS = MappingProxyType(
    {
        "ns": _NANOSECOND,
        "us": _MICROSECOND,
        "µs": _MICROSECOND,
        "μs": _MICROSECOND,
        "ms": _MILLISECOND,
        "s": _SECOND,
        "m": _MINUTE,
        "h": _HOUR,
    }
)
CUSTOM_DURATION_UNITS = MappingProxyType(
    {
        **STANDARD_DURATION_UNITS,
        "d": _DAY,
        "w": 7 * _DAY,
        "mo": 30 * _DAY,
        "y": 365 * _DAY,
    }
)

_NUMBER = r"(?:\d+\.?\d*|\.\d+)"
_UNIT_ORDER = ("mo", "ms", "ns", "us", "µs", "μs", "s", "m", "h", "d", "w", "y")

_BYTE_MULTIPLIERS = MappingProxyType(
    {
        "B": 1,
        "K": 1024,
        "M": 1024**2,
        "G": 1024**3,
        "T": 1024**4,
    }
)
_BYTES_RE = re.compile(r"^(-?(?:\d+(?:\.\d*)?|\.\d+))(B|[KMGT](?:B|IB)?)$", re.IGNORECASE)


def _segment_pattern(units: MappingProxyType) -> re.Pattern[str]:
    # longest units first so "ms" and "mo" win over "m"
    alternatives = "|".join(re.escape(unit) for unit in _UNIT_ORDER if unit in units)
    return re.compile(rf"({_NUMBER})({alternatives})")


_STANDARD_SEGMENT_RE = _segment_pattern(STANDARD_DURATION_UNITS)
_CUSTOM_SEGMENT_RE = _segment_pattern(CUSTOM_DURATION_UNITS)


def _parse_number_nanoseconds(number: str, scale: int) -> int:
    whole, _, fraction = number.partition(".")
    total = int(whole or "0") * scale
    if fraction:
        total += int(fraction) * scale // (10 ** len(fraction))
    return total


def _parse_with(text: str, units: MappingProxyType, segment_re: re.Pattern[str]) -> timedelta:
    raw = text
    if not isinstance(text, str):
        raise DurationParseError(f"invalid duration {raw!r}", str(raw))
    body = text
    sign = 1
    if body[:1] in {"-", "+"}:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise DurationParseError(f"invalid duration {raw!r}", raw)

    position = 0
    total_ns = 0
    while position < len(body):
        match = segment_re.match(body, position)
        if match is None:
            raise DurationParseError(f"invalid duration {raw!r}", raw)
        number, unit = match.group(1), match.group(2)
        end = match.end()
        if end < len(body) and body[end].isalpha():
            raise DurationParseError(f"unknown unit in duration {raw!r}", raw)
        total_ns += _parse_number_nanoseconds(number, units[unit])
        position = end
    try:
        return timedelta(microseconds=sign * (total_ns // _MICROSECOND))
    except OverflowError as exc:
        raise DurationParseError(f"duration {raw!r} is out of range", raw) from exc


def parse_duration(text: str) -> timedelta:
    return _parse_with(text, STANDARD_DURATION_UNITS, _STANDARD_SEGMENT_RE)


def parse_custom_duration(text: str) -> timedelta:
    """Parse a duration allowing day, week, month and year units."""
    return _parse_with(text, CUSTOM_DURATION_UNITS, _CUSTOM_SEGMENT_RE)


def parse_byte_size(text: str) -> int:
    raw = "" if text is None else str(text)
    match = _BYTES_RE.match(raw.strip())
    if match is None:
        raise ByteSizeParseError(
            f"invalid byte quantity {raw!r}: must be a positive number with a unit like B, K, M, MB, MiB, G or GiB",
            raw,
        )
    value = float(match.group(1))
    if value <= 0:
        raise ByteSizeParseError(f"invalid byte quantity {raw!r}: must be greater than zero", raw)
    multiplier = _BYTE_MULTIPLIERS[match.group(2)[0].upper()]
    return int(value * multiplier)


@dataclass(frozen=True, slots=True)
class ParsedDuration:
    raw: str
    value: timedelta

    @classmethod
    def parse(cls, raw: str, *, custom: bool = False) -> "ParsedDuration":
        value = parse_custom_duration(raw) if custom else parse_duration(raw)
        return cls(raw=raw, value=value)

    @property
    def seconds(self) -> float:
        return self.value.total_seconds()


@dataclass(frozen=True, slots=True)
class ByteSize:
    raw: str
    value: int

    @classmethod
    def parse(cls, raw: str) -> "ByteSize":
        return cls(raw=raw, value=parse_byte_size(raw))
