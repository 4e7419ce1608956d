"""Processor roles driven by the orchestrator, and their validation-only variants.

What:
  Describe the four capabilities the orchestrator relies on while walking the
  document (config, account, mailbox, rule) as structural protocols, and
  provide the Null implementations used by the validation pass.

Why:
  The validation pass and the live pass must follow exactly the same code
  path so that whatever the first pass accepts, the second can execute. The
  orchestrator therefore only talks to these protocols; which family of
  processors it gets decides whether the network is touched at all.

How:
  Each role is a :class:`typing.Protocol`. Every role hands out the processor
  for the next level down, so one family never mixes with the other. The Null
  family accepts every call and does nothing; the Live family lives in
  :mod:`imapsweep.imap.processors`.

Interfaces:
  :class:`ConfigProcessor`, :class:`AccountProcessor`,
  :class:`MailboxProcessor`, :class:`RuleProcessor` and
  :class:`NullConfigProcessor`, :class:`NullAccountProcessor`,
  :class:`NullMailboxProcessor`, :class:`NullRuleProcessor`.

Invariants & Safety:
  - Null processors never open a socket and never fail.
  - A processor instance serves one node of the document and its subtree.
"""
from __future__ import annotations

from typing import Protocol

from ..config.schema import CapabilityFlags, Credentials


class RuleProcessor(Protocol):
    """Token collector and message operations for one rule."""

    def append(self, token: str) -> None:
        """Accumulate one search token."""

    def search(self) -> None:
        """Run the accumulated search (``ALL`` if empty) and keep the matches."""

    def move(self, destination: str) -> None:
        """Copy the matched messages to ``destination``; no-op without matches."""

    def mark_src_for_del(self) -> None:
        """Flag the matched messages ``\\Deleted``; no-op without matches."""


class MailboxProcessor(Protocol):
    """Operations on one selected mailbox."""

    def select_mailbox(self, name: str) -> None:
        """Open ``name`` read/write."""

    def new_rule_processor(self) -> RuleProcessor:
        """Return a processor with an empty token accumulator."""

    def close(self) -> None:
        """Close the mailbox, expunging messages flagged for deletion."""


class AccountProcessor(Protocol):
    """Session management for one account."""

    def connect(self, host: str, flags: CapabilityFlags, credentials: Credentials) -> None:
        """Open the session and authenticate."""

    def new_mailbox_processor(self) -> MailboxProcessor:
        """Return a processor bound to this account's session."""

    def logout(self) -> None:
        """End the session."""


class ConfigProcessor(Protocol):
    """Entry point handing out one account processor per account."""

    def new_account_processor(self) -> AccountProcessor:
        """Return a fresh, unconnected account processor."""


class NullRuleProcessor:
    def append(self, token: str) -> None:
        pass

    def search(self) -> None:
        pass

    def move(self, destination: str) -> None:
        pass

    def mark_src_for_del(self) -> None:
        pass


class NullMailboxProcessor:
    def select_mailbox(self, name: str) -> None:
        pass

    def new_rule_processor(self) -> RuleProcessor:
        return NullRuleProcessor()

    def close(self) -> None:
        pass


class NullAccountProcessor:
    def connect(self, host: str, flags: CapabilityFlags, credentials: Credentials) -> None:
        pass

    def new_mailbox_processor(self) -> MailboxProcessor:
        return NullMailboxProcessor()

    def logout(self) -> None:
        pass


class NullConfigProcessor:
    """Validation-only processor family: walks the tree without any I/O."""

    def new_account_processor(self) -> AccountProcessor:
        return NullAccountProcessor()
