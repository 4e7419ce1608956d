"""Decode precondition and action values into IMAP search tokens.

What:
  Turn the leaf :class:`~imapsweep.config.schema.Value` nodes of the document
  into the text tokens sent with ``SEARCH``: strings verbatim, unsigned 32-bit
  integers as decimal text, dates as ``DD-Mon-YYYY`` and relative durations as
  the date lying that far in the past.

Why:
  IMAP search syntax is positional and picky about argument formats. Keeping
  the conversions here lets the compiler stay a table of fields and arities
  while every decode failure is reported the same way, with the field name
  and the value's location.

How:
  Each ``decode_*`` helper inspects the YAML-resolved ``data`` and the source
  ``text`` of the value and raises :class:`~imapsweep.errors.ValueDecodeError`
  when they do not fit. Dates are formatted by
  :func:`imapclient.datetime_util.format_criteria_date` so the month names do
  not depend on the process locale. Durations follow Go's syntax
  (``1h30m``, ``720h``) extended with days and weeks.

Interfaces:
  :func:`decode_string`, :func:`decode_uint32`, :func:`decode_date`,
  :func:`decode_duration`, :func:`parse_duration`, :func:`format_date`.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Union

from imapclient.datetime_util import format_criteria_date

from ..config.schema import Precondition, Value
from ..errors import ValueDecodeError

UINT32_MAX = 2**32 - 1

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
    "w": 604800.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h|d|w)")

Node = Union[Value, Precondition]


def _leaf(field: str, kind: str, node: Node) -> Value:
    if isinstance(node, Precondition):
        raise ValueDecodeError(field, kind, "expected a scalar, got a precondition", node.location)
    if not node.scalar:
        raise ValueDecodeError(field, kind, f"expected a scalar, got {node.text!r}", node.location)
    return node


def format_date(moment: Union[date, datetime]) -> str:
    """Format ``moment`` as an IMAP search date (``05-Mar-2024``)."""

    return format_criteria_date(moment).decode("ascii")


def decode_string(field: str, node: Node) -> str:
    return _leaf(field, "string", node).text


def decode_uint32(field: str, node: Node) -> str:
    value = _leaf(field, "uint32", node)
    number = value.data
    if isinstance(number, bool) or not isinstance(number, int):
        raise ValueDecodeError(field, "uint32", f"{value.text!r} is not an integer", value.location)
    if not 0 <= number <= UINT32_MAX:
        raise ValueDecodeError(field, "uint32", f"{number} is out of range", value.location)
    return str(number)


def decode_date(field: str, node: Node) -> str:
    value = _leaf(field, "date", node)
    moment = value.data
    if isinstance(moment, str):
        try:
            moment = datetime.fromisoformat(moment)
        except ValueError:
            raise ValueDecodeError(
                field, "date", f"{value.text!r} is not a date", value.location
            ) from None
    if not isinstance(moment, (date, datetime)):
        raise ValueDecodeError(field, "date", f"{value.text!r} is not a date", value.location)
    return format_date(moment)


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as ``"1h30m"`` or ``"-2.5d"``.

    Raises:
      ValueError: If ``text`` is not a sequence of ``<number><unit>`` parts.
    """

    source = text.strip()
    sign = 1
    if source and source[0] in "+-":
        sign = -1 if source[0] == "-" else 1
        source = source[1:]
    if source == "0":
        return timedelta(0)
    if not source:
        raise ValueError(f"invalid duration {text!r}")
    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(source):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position != len(source):
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(seconds=sign * seconds)


def decode_duration(field: str, node: Node, now: datetime) -> str:
    value = _leaf(field, "duration", node)
    try:
        span = parse_duration(value.text)
    except (ValueError, OverflowError) as exc:
        raise ValueDecodeError(field, "duration", str(exc), value.location) from None
    try:
        return format_date(now - span)
    except OverflowError:
        raise ValueDecodeError(
            field, "duration", f"{value.text!r} is out of range", value.location
        ) from None
