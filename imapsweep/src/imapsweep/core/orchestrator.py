"""Walk the sweep document and drive the processors in order.

What:
  Traverse accounts, mailboxes and rules in document order, asking each
  processor for the processor of the next level, and run the
  connect → select → compile + search → act → close → logout sequence.
  :func:`run` performs the validation pass with the Null family and, only if
  it found nothing, the live pass.

Why:
  Copying and flagging messages cannot be undone. Every configuration error
  (unknown fields, wrong arities, bad values, unknown actions) must therefore
  surface before the first mutating command, and a failure in one account or
  mailbox must not stop the others.

How:
  Each level collects the errors of its children in an
  :class:`~imapsweep.errors.AggregateError` through :func:`_collecting`. The
  release step of a level (mailbox close, account logout) is wrapped in
  :func:`_released`, so it runs on every exit path once the entry step
  (select, connect) succeeded, and its own error joins the aggregate.

Interfaces:
  :func:`process_config`, :func:`process_account`, :func:`process_mailbox`,
  :func:`process_rule`, :func:`run`.

Invariants & Safety:
  - A failed connect skips only that account, a failed select only that
    mailbox, a failed compile or search only that rule's actions.
  - The live pass never starts when the validation pass reported an error.
  - Only :class:`~imapsweep.errors.SweepError` is contained; anything else is
    a bug and propagates after the release steps ran.
"""
from __future__ import annotations

import contextlib
from datetime import datetime
from typing import Callable, Iterator, Optional

from ..config.schema import Account, Mailbox, Rule, SweepConfig
from ..errors import AggregateError, RunFailed, SweepError, ValidationFailed
from ..utils.logging import JsonLogger, get_logger
from .actions import execute_actions
from .preconditions import compile_precondition
from .processors import (
    AccountProcessor,
    ConfigProcessor,
    MailboxProcessor,
    NullConfigProcessor,
    RuleProcessor,
)


@contextlib.contextmanager
def _collecting(errors: AggregateError) -> Iterator[None]:
    """Record a :class:`SweepError` raised in the block instead of propagating it."""

    try:
        yield
    except SweepError as exc:
        errors.append(exc)


@contextlib.contextmanager
def _released(release: Callable[[], None], errors: AggregateError) -> Iterator[None]:
    """Run ``release`` when the block exits, recording its failure in ``errors``."""

    try:
        yield
    finally:
        with _collecting(errors):
            release()


def process_rule(processor: RuleProcessor, rule: Rule, *, now: Optional[datetime] = None) -> None:
    """Compile the preconditions of ``rule``, search, then execute its actions.

    Compile errors of all preconditions are collected first; the search only
    runs when there are none, and the actions only when the search succeeded.
    """

    errors = AggregateError()
    for precondition in rule.preconditions:
        with _collecting(errors):
            compile_precondition(precondition, processor, now=now)
    errors.raise_if_errors()

    processor.search()
    execute_actions(rule.actions, processor)


def process_mailbox(
    processor: MailboxProcessor,
    mailbox: Mailbox,
    *,
    now: Optional[datetime] = None,
) -> None:
    processor.select_mailbox(mailbox.name)
    errors = AggregateError()
    with _released(processor.close, errors):
        for rule in mailbox.rules:
            with _collecting(errors):
                process_rule(processor.new_rule_processor(), rule, now=now)
    errors.raise_if_errors()


def process_account(
    processor: AccountProcessor,
    account: Account,
    *,
    now: Optional[datetime] = None,
) -> None:
    processor.connect(account.host, account.flags, account.credentials)
    errors = AggregateError()
    with _released(processor.logout, errors):
        for mailbox in account.mailboxes:
            with _collecting(errors):
                process_mailbox(processor.new_mailbox_processor(), mailbox, now=now)
    errors.raise_if_errors()


def process_config(
    processor: ConfigProcessor,
    config: SweepConfig,
    *,
    now: Optional[datetime] = None,
) -> AggregateError:
    """Walk every account of ``config`` with ``processor``.

    What:
      Run one full pass over the document.

    Why:
      Accounts are independent: one unreachable server must not keep the
      others from being swept, yet its failure must be reported.

    How:
      Process each account under :func:`_collecting` and hand back everything
      that was collected.

    Args:
      processor: Entry point of the processor family for this pass.
      config: Document to walk.
      now: Reference time for relative durations, for reproducible tests.

    Returns:
      The errors of the pass, empty when everything succeeded.
    """

    errors = AggregateError()
    for account in config.accounts:
        with _collecting(errors):
            process_account(processor.new_account_processor(), account, now=now)
    return errors


def run(
    config: SweepConfig,
    live: ConfigProcessor,
    *,
    validator: Optional[ConfigProcessor] = None,
    now: Optional[datetime] = None,
    logger: Optional[JsonLogger] = None,
) -> None:
    """Validate ``config`` without network access, then execute it.

    Args:
      config: Document to execute.
      live: Processor family for the second pass.
      validator: Processor family for the first pass, the Null family by
        default.
      now: Reference time for relative durations.
      logger: Destination of the pass summaries.

    Raises:
      ValidationFailed: The validation pass reported errors; nothing was
        executed.
      RunFailed: The live pass reported errors. Operations that succeeded
        before or beside the failures are not rolled back.
    """

    logger = logger or get_logger("imapsweep.orchestrator")
    logger.info("validation pass started", source=config.source, accounts=len(config.accounts))
    errors = process_config(validator or NullConfigProcessor(), config, now=now)
    if errors:
        logger.error("validation pass failed", errors=len(errors))
        raise ValidationFailed(errors)

    logger.info("live pass started", source=config.source)
    errors = process_config(live, config, now=now)
    if errors:
        logger.error("live pass failed", errors=len(errors))
        raise RunFailed(errors)
    logger.info("live pass finished", source=config.source)
