"""Error taxonomy shared by the loader, compiler, processors and orchestrator.

What:
  Define the exception hierarchy raised while loading the sweep document,
  compiling preconditions, executing actions and talking to IMAP servers,
  together with :class:`AggregateError`, the ordered multi-error container used
  to report every problem of a run at once.

Why:
  The validation pass must surface every configuration mistake in a single
  run. Sibling rules, mailboxes and accounts therefore keep going after an
  error, and the errors have to be collected without one overwriting another.

How:
  Every error derives from :class:`SweepError`. Errors tied to a document node
  carry its :class:`~imapsweep.config.schema.Location` and render it as a
  ``path:line.column:`` prefix. :class:`AggregateError` is itself a
  :class:`SweepError` so it can travel through the same ``except`` clauses;
  appending an aggregate to another flattens it.

Interfaces:
  :class:`SweepError`, :class:`DocumentError`, :class:`TrustStoreError`,
  :class:`CompileError`, :class:`UnknownFieldError`,
  :class:`ArityMismatchError`, :class:`ValueDecodeError`,
  :class:`ActionNotDefinedError`, :class:`AuthenticationError`,
  :class:`ProtocolError`, :class:`AggregateError`, :class:`ValidationFailed`,
  :class:`RunFailed`.

Invariants & Safety:
  - An aggregate never drops or merges contributing errors; order is the order
    in which they were appended.
  - Error messages never include credentials.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional

if TYPE_CHECKING:
    from .config.schema import Location


class SweepError(Exception):
    """Base class for every error raised by imapsweep."""


def _weave(location: Optional[Location], message: str) -> str:
    if location is None:
        return message
    return f"{location}: {message}"


class DocumentError(SweepError):
    """The sweep document cannot be read, parsed or validated."""

    def __init__(self, message: str, location: Optional[Location] = None) -> None:
        super().__init__(_weave(location, message))
        self.location = location


class TrustStoreError(SweepError):
    """The CA bundle could not be turned into a trust store."""


class CompileError(SweepError):
    """A precondition could not be compiled into search tokens."""

    def __init__(self, message: str, location: Optional[Location] = None) -> None:
        super().__init__(_weave(location, message))
        self.location = location


class UnknownFieldError(CompileError):
    """The precondition names a search field that does not exist."""

    def __init__(self, field: str, location: Optional[Location] = None) -> None:
        super().__init__(f"unknown search field {field}", location)
        self.field = field


class ArityMismatchError(CompileError):
    """The precondition carries the wrong number of values for its field."""

    def __init__(
        self,
        field: str,
        expected: int,
        actual: int,
        location: Optional[Location] = None,
    ) -> None:
        super().__init__(
            f"search field {field} takes {expected} args.  {actual} args given",
            location,
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class ValueDecodeError(CompileError):
    """A precondition or action value does not decode to the expected kind."""

    def __init__(
        self,
        field: str,
        kind: str,
        detail: str,
        location: Optional[Location] = None,
    ) -> None:
        super().__init__(f"{field}: cannot decode {kind} value: {detail}", location)
        self.field = field
        self.kind = kind


class ActionNotDefinedError(SweepError):
    """A rule names an action kind other than ``move``."""

    def __init__(self, action: str, location: Optional[Location] = None) -> None:
        super().__init__(_weave(location, f"unknown action type {action}"))
        self.action = action
        self.location = location


class ProtocolError(SweepError):
    """An IMAP operation failed on the wire or was rejected by the server."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation


class AuthenticationError(SweepError):
    """No enabled authentication scheme brought the session to authenticated state."""

    def __init__(self, host: str) -> None:
        super().__init__(f"{host}: authentication failed")
        self.host = host


class AggregateError(SweepError):
    """Ordered, appendable collection of errors.

    What:
      Hold every error produced while walking a subtree, in the order they
      occurred.

    Why:
      A run reports all configuration problems together instead of stopping
      at the first one, so errors must accumulate without loss.

    How:
      :meth:`append` adds one error; appending another :class:`AggregateError`
      splices its members in place so the result stays flat. The aggregate is
      falsy while empty, which lets callers write ``if errors: raise errors``.
    """

    def __init__(self, errors: Iterable[BaseException] = ()) -> None:
        super().__init__()
        self.errors: List[BaseException] = []
        self.extend(errors)

    def append(self, error: BaseException) -> None:
        if isinstance(error, AggregateError):
            self.errors.extend(error.errors)
        else:
            self.errors.append(error)

    def extend(self, errors: Iterable[BaseException]) -> None:
        for error in errors:
            self.append(error)

    def raise_if_errors(self) -> None:
        """Raise the only member as is, or the aggregate when it holds several."""

        if len(self.errors) == 1:
            raise self.errors[0]
        if self.errors:
            raise self

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __str__(self) -> str:
        return "\n".join(str(error) for error in self.errors)


class ValidationFailed(SweepError):
    """The validation pass found errors; the live pass did not run."""

    def __init__(self, errors: AggregateError) -> None:
        super().__init__(str(errors))
        self.errors = errors


class RunFailed(SweepError):
    """The live pass finished with errors."""

    def __init__(self, errors: AggregateError) -> None:
        super().__init__(str(errors))
        self.errors = errors
