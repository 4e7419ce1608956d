"""Aggregated exports for the imapsweep core.

What:
  Expose the precondition compiler, the action executor, the processor
  protocols with their validation-only family, and the orchestrator.

Why:
  None of these modules touches the network, so the whole core can be
  imported and tested without an IMAP server.

Interfaces:
  ``compile_precondition``, ``SEARCH_FIELDS``, ``execute_actions``,
  ``ConfigProcessor``, ``AccountProcessor``, ``MailboxProcessor``,
  ``RuleProcessor``, ``NullConfigProcessor``, ``process_config``, ``run``.
"""

from __future__ import annotations

from .actions import execute_actions
from .orchestrator import process_config, run
from .preconditions import SEARCH_FIELDS, compile_precondition
from .processors import (
    AccountProcessor,
    ConfigProcessor,
    MailboxProcessor,
    NullConfigProcessor,
    RuleProcessor,
)

__all__ = [
    "compile_precondition",
    "SEARCH_FIELDS",
    "execute_actions",
    "ConfigProcessor",
    "AccountProcessor",
    "MailboxProcessor",
    "RuleProcessor",
    "NullConfigProcessor",
    "process_config",
    "run",
]
