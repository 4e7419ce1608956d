"""Pytest fixtures for unit tests requiring IMAP fakes.

What:
  Make ``tests/unit`` importable and expose fixtures backed by
  :class:`FakeImapBackend`, a fixed clock and a captured JSON logger.

Why:
  The live session code talks to ``imapclient`` directly. Replacing the client
  class keeps those tests offline and deterministic.

How:
  Append the unit directory to ``sys.path`` for local imports and monkeypatch
  ``imapsweep.imap.client.IMAPClient`` so that dialing returns the fake.

Interfaces:
  :func:`imap_backend`, :func:`now`, :func:`log_stream`, :func:`logger`
  (pytest fixtures).

Invariants & Safety:
  - Each test receives a fresh backend so no state leaks between tests.
"""

import io
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

from imapsweep.utils.logging import JsonLogger

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend


@pytest.fixture
def imap_backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Install a fresh :class:`FakeImapBackend` in place of ``IMAPClient``.

    The backend itself is the patched constructor; dialing records the host,
    port and TLS settings and returns the backend.
    """

    backend = FakeImapBackend(matches=[3, 5, 8], capabilities=["IMAP4REV1"])
    monkeypatch.setattr("imapsweep.imap.client.IMAPClient", backend)
    return backend


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for relative durations."""

    return datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(component="imapsweep.test", stream=log_stream)
