"""
Module: imapsweep.__init__

What:
  Aggregate package exports for the imapsweep mailbox housekeeping job and
  expose the primary namespace segments (document model, core logic, IMAP
  integration, and utilities).

Why:
  Entry points and tests import these segments by name; keeping the list
  explicit makes the supported surface obvious while the internal layout
  evolves.

Interfaces:
  - config: Document schema and YAML loader.
  - core: Precondition compiler, action executor, processors, orchestrator.
  - imap: Live processor family backed by ``imapclient`` and the TLS context.
  - utils: Structured logging helpers.

Invariants:
  - Nothing in ``config`` or ``core`` opens a network connection.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "core",
    "imap",
    "utils",
]
