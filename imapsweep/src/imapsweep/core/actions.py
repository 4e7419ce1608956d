"""Translate a rule's action map into rule processor calls.

What:
  Walk the :class:`~imapsweep.config.schema.Action` entries of a rule and
  drive the matching :class:`~imapsweep.core.processors.RuleProcessor`
  methods. ``move`` is the only action kind: a copy per destination followed
  by a single mark-for-deletion of the source messages.

Why:
  Centralising the mapping between action kinds and processor calls keeps the
  set of mutating operations small and explicit. Unknown kinds are reported
  instead of silently ignored, and they are reported during the validation
  pass, before anything is copied.

How:
  :func:`execute_actions` processes the kinds in document order, collecting
  decode and unknown-kind errors into an
  :class:`~imapsweep.errors.AggregateError`. A failure of the processor itself
  while copying ends the rule at once, without the mark-for-deletion, so that
  messages which may not have reached every destination are never deleted.

Interfaces:
  :data:`MOVE`, :func:`execute_actions`.

Invariants & Safety:
  - ``mark_src_for_del`` runs at most once per rule, after every destination.
  - Nothing is flagged for deletion after a failed copy.
  - An undecodable destination is reported and skipped; the other
    destinations and the mark still run. The validation pass rejects such a
    rule, so the live pass never reaches this case.
"""
from __future__ import annotations

from typing import Sequence

from ..config.schema import Action
from ..errors import ActionNotDefinedError, AggregateError, CompileError, SweepError
from .processors import RuleProcessor
from .values import decode_string

MOVE = "move"


def _move(action: Action, processor: RuleProcessor, errors: AggregateError) -> None:
    for argument in action.arguments:
        try:
            destination = decode_string(MOVE, argument)
        except CompileError as exc:
            errors.append(exc)
            continue
        processor.move(destination)


def execute_actions(actions: Sequence[Action], processor: RuleProcessor) -> None:
    """Run the actions of one rule against the messages ``processor`` matched.

    Args:
      actions: Action entries of the rule, in document order.
      processor: Rule processor on which ``search`` already succeeded.

    Raises:
      ActionNotDefinedError: An action kind other than ``move`` was given.
      ValueDecodeError: A destination is not a string scalar.
      SweepError: The processor failed while copying or flagging.
      AggregateError: Several of the above.
    """

    errors = AggregateError()
    moved = False
    for action in actions:
        if action.kind != MOVE:
            errors.append(ActionNotDefinedError(action.kind, action.location))
            continue
        try:
            _move(action, processor, errors)
        except SweepError as exc:
            errors.append(exc)
            errors.raise_if_errors()
        moved = True

    if moved:
        try:
            processor.mark_src_for_del()
        except SweepError as exc:
            errors.append(exc)
    errors.raise_if_errors()
