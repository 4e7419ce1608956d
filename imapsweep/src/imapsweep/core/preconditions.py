"""Compile rule preconditions into IMAP ``SEARCH`` tokens.

What:
  Translate a :class:`~imapsweep.config.schema.Precondition` tree into the
  ordered token sequence a rule processor sends with ``SEARCH``, checking that
  each field exists and carries the number and kind of values it needs.

Why:
  The same compiler feeds the validation pass and the live pass. Any field,
  arity or value mistake therefore shows up before a single message is copied
  or flagged, and it shows up for every precondition in the document rather
  than only the first broken one.

How:
  :data:`SEARCH_FIELDS` maps every recognised tag to a :class:`SearchField`
  describing the value kind, the expected arity (``None`` for list fields) and
  the tag actually emitted. :func:`compile_precondition` checks the arity,
  decodes all values through :mod:`imapsweep.core.values` and only then
  appends the tokens, recursing for ``NOT`` and ``OR``. ``OR`` combines its
  operands pairwise from the left, so the tag precedes every operand but the
  last one.

Interfaces:
  :class:`Collector`, :class:`GroupDelimiter`, :data:`GROUP_OPEN`,
  :data:`GROUP_CLOSE`, :class:`ArgKind`, :class:`SearchField`,
  :data:`SEARCH_FIELDS`, :func:`compile_precondition`.

Invariants & Safety:
  - Only whitelisted fields reach the server; unknown tags raise
    :class:`~imapsweep.errors.UnknownFieldError`.
  - The compiler has no side effect other than ``collector.append``.
  - Errors in sibling ``OR`` operands and in sibling values are aggregated.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Union

from ..config.schema import Precondition, Value
from ..errors import (
    AggregateError,
    ArityMismatchError,
    CompileError,
    UnknownFieldError,
    ValueDecodeError,
)
from .values import decode_date, decode_duration, decode_string, decode_uint32


class Collector(Protocol):
    """Anything accumulating search tokens."""

    def append(self, token: str) -> None:
        ...


class GroupDelimiter(str):
    """Parenthesis opening or closing a search group.

    Only the two module constants below are delimiters. A value that happens
    to read ``(`` is an ordinary ``str`` and is sent as a value.
    """


GROUP_OPEN = GroupDelimiter("(")
GROUP_CLOSE = GroupDelimiter(")")


class ArgKind(enum.Enum):
    """Kind of values a search field takes."""

    NONE = "none"
    STRING = "string"
    UINT32 = "uint32"
    DATE = "date"
    DURATION = "duration"
    UINT32_LIST = "uint32 list"
    STRING_LIST = "string list"
    NESTED = "precondition"
    NESTED_LIST = "precondition list"


@dataclass(frozen=True)
class SearchField:
    """Compilation rule for one precondition field.

    Attributes:
      name: Tag as written in the document.
      kind: Kind of every value.
      arity: Required number of values, ``None`` when any count is accepted.
      emit: Tag sent to the server, ``None`` when no tag is sent (``MSG``).
    """

    name: str
    kind: ArgKind
    arity: Optional[int]
    emit: Optional[str]


def _table() -> Dict[str, SearchField]:
    fields: List[SearchField] = []
    for name in (
        "ALL",
        "ANSWERED",
        "DELETED",
        "DRAFT",
        "FLAGGED",
        "NEW",
        "OLD",
        "RECENT",
        "SEEN",
        "UNANSWERED",
        "UNDELETED",
        "UNDRAFT",
        "UNFLAGGED",
        "UNSEEN",
    ):
        fields.append(SearchField(name, ArgKind.NONE, 0, name))
    for name in ("BCC", "BODY", "CC", "FROM", "KEYWORD", "SUBJECT", "TEXT", "TO", "UNKEYWORD"):
        fields.append(SearchField(name, ArgKind.STRING, 1, name))
    for name in ("BEFORE", "ON", "SENTBEFORE", "SENTON", "SENTSINCE", "SINCE"):
        fields.append(SearchField(name, ArgKind.DATE, 1, name))
    for name in ("LARGER", "SMALLER"):
        fields.append(SearchField(name, ArgKind.UINT32, 1, name))
    fields.extend(
        [
            SearchField("HEADER", ArgKind.STRING, 2, "HEADER"),
            SearchField("OLDERTHAN", ArgKind.DURATION, 1, "BEFORE"),
            SearchField("MSG", ArgKind.UINT32_LIST, None, None),
            SearchField("UID", ArgKind.STRING_LIST, None, "UID"),
            SearchField("NOT", ArgKind.NESTED, 1, "NOT"),
            SearchField("OR", ArgKind.NESTED_LIST, None, "OR"),
        ]
    )
    return {field.name: field for field in fields}


SEARCH_FIELDS: Dict[str, SearchField] = _table()


def compile_precondition(
    node: Precondition,
    collector: Collector,
    *,
    now: Optional[datetime] = None,
) -> None:
    """Append the search tokens for ``node`` to ``collector``.

    What:
      Validate ``node`` (and its nested operands) and emit its tokens in
      order.

    Why:
      Rule processors only know how to accumulate tokens; every decision about
      IMAP search syntax lives here.

    How:
      Resolve the :class:`SearchField`, check the arity, then hand over to
      :func:`_compile_nested` for ``NOT``/``OR`` or decode the leaf values and
      append the resulting tokens in one go.

    Args:
      node: Precondition to compile.
      collector: Token sink, usually a rule processor.
      now: Reference time for relative durations; the current local time
        when omitted.

    Raises:
      UnknownFieldError: The field tag is not recognised.
      ArityMismatchError: The field got the wrong number of values.
      ValueDecodeError: A value does not fit the field's kind.
      AggregateError: Several of the above, from sibling values or operands.
    """

    if now is None:
        now = datetime.now().astimezone()
    entry = SEARCH_FIELDS.get(node.field)
    if entry is None:
        raise UnknownFieldError(node.field, node.location)
    if entry.arity is not None and len(node.values) != entry.arity:
        raise ArityMismatchError(node.field, entry.arity, len(node.values), node.location)
    if entry.kind in (ArgKind.NESTED, ArgKind.NESTED_LIST):
        _compile_nested(entry, node, collector, now)
        return
    for token in _leaf_tokens(entry, node, now):
        collector.append(token)


def _leaf_tokens(entry: SearchField, node: Precondition, now: datetime) -> List[str]:
    decoders: Dict[ArgKind, Callable[..., str]] = {
        ArgKind.STRING: decode_string,
        ArgKind.STRING_LIST: decode_string,
        ArgKind.UINT32: decode_uint32,
        ArgKind.UINT32_LIST: decode_uint32,
        ArgKind.DATE: decode_date,
        ArgKind.DURATION: lambda field, value: decode_duration(field, value, now),
    }
    decoded: List[str] = []
    errors = AggregateError()
    if entry.kind is not ArgKind.NONE:
        decode = decoders[entry.kind]
        for value in node.values:
            try:
                decoded.append(decode(node.field, value))
            except CompileError as exc:
                errors.append(exc)
    errors.raise_if_errors()

    if entry.kind is ArgKind.STRING_LIST:
        return [GROUP_OPEN, entry.emit, *decoded, GROUP_CLOSE]
    if entry.emit is None:
        return decoded
    return [entry.emit, *decoded]


def _operand(entry: SearchField, value: Union[Precondition, Value]) -> Precondition:
    if isinstance(value, Precondition):
        return value
    raise ValueDecodeError(entry.name, ArgKind.NESTED.value, f"got {value.text!r}", value.location)


def _compile_nested(
    entry: SearchField,
    node: Precondition,
    collector: Collector,
    now: datetime,
) -> None:
    if entry.kind is ArgKind.NESTED:
        operand = _operand(entry, node.values[0])
        collector.append(entry.emit)
        compile_precondition(operand, collector, now=now)
        return

    errors = AggregateError()
    last = len(node.values) - 1
    for index, value in enumerate(node.values):
        try:
            operand = _operand(entry, value)
            if index < last:
                collector.append(entry.emit)
            compile_precondition(operand, collector, now=now)
        except (CompileError, AggregateError) as exc:
            errors.append(exc)
    errors.raise_if_errors()
