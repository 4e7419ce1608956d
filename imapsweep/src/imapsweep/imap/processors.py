"""Live processor family: the processor roles backed by real IMAP sessions.

What:
  Implement :mod:`imapsweep.core.processors` protocols on top of
  :class:`~imapsweep.imap.client.ImapSession`.

Why:
  The orchestrator drives the live pass exactly like the validation pass; the
  only difference is that these processors talk to the server.

How:
  :class:`LiveConfigProcessor` carries the TLS context and the logout timeout
  and hands out one :class:`LiveAccountProcessor` per account. The account
  processor opens the session on ``connect`` and shares it with the mailbox
  and rule processors it creates. A :class:`LiveRuleProcessor` accumulates
  tokens, remembers the ids returned by ``search`` and uses them for ``move``
  and ``mark_src_for_del``.

Interfaces:
  :class:`LiveConfigProcessor`, :class:`LiveAccountProcessor`,
  :class:`LiveMailboxProcessor`, :class:`LiveRuleProcessor`.
"""
from __future__ import annotations

import ssl
from typing import List, Optional

from ..config.schema import CapabilityFlags, Credentials
from ..core.processors import AccountProcessor, MailboxProcessor, RuleProcessor
from ..utils.logging import JsonLogger, get_logger
from .client import LOGOUT_TIMEOUT, ImapSession


class LiveRuleProcessor:
    """Search, copy and flag messages for one rule."""

    def __init__(self, session: ImapSession) -> None:
        self._session = session
        self._tokens: List[str] = []
        self._matched: List[int] = []

    @property
    def tokens(self) -> List[str]:
        return list(self._tokens)

    @property
    def matched(self) -> List[int]:
        return list(self._matched)

    def append(self, token: str) -> None:
        self._tokens.append(token)

    def search(self) -> None:
        self._matched = self._session.search(self._tokens)

    def move(self, destination: str) -> None:
        if self._matched:
            self._session.copy(self._matched, destination)

    def mark_src_for_del(self) -> None:
        if self._matched:
            self._session.mark_deleted(self._matched)


class LiveMailboxProcessor:
    def __init__(self, session: ImapSession) -> None:
        self._session = session

    def select_mailbox(self, name: str) -> None:
        self._session.select(name)

    def new_rule_processor(self) -> RuleProcessor:
        return LiveRuleProcessor(self._session)

    def close(self) -> None:
        self._session.close_folder()


class LiveAccountProcessor:
    """Own the session of one account from ``connect`` to ``logout``."""

    def __init__(
        self,
        *,
        ssl_context: Optional[ssl.SSLContext] = None,
        logout_timeout: float = LOGOUT_TIMEOUT,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._ssl_context = ssl_context
        self._logout_timeout = logout_timeout
        self._logger = logger or get_logger("imapsweep.imap")
        self._session: Optional[ImapSession] = None

    @property
    def session(self) -> ImapSession:
        if self._session is None:
            raise RuntimeError("IMAP session not connected")
        return self._session

    def connect(self, host: str, flags: CapabilityFlags, credentials: Credentials) -> None:
        self._session = ImapSession.open(
            host,
            flags,
            credentials,
            ssl_context=self._ssl_context,
            logger=self._logger,
        )

    def new_mailbox_processor(self) -> MailboxProcessor:
        return LiveMailboxProcessor(self.session)

    def logout(self) -> None:
        try:
            self.session.logout(self._logout_timeout)
        finally:
            self._session = None


class LiveConfigProcessor:
    """Entry point of the live family."""

    def __init__(
        self,
        *,
        ssl_context: Optional[ssl.SSLContext] = None,
        logout_timeout: float = LOGOUT_TIMEOUT,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._ssl_context = ssl_context
        self._logout_timeout = logout_timeout
        self._logger = logger

    def new_account_processor(self) -> AccountProcessor:
        return LiveAccountProcessor(
            ssl_context=self._ssl_context,
            logout_timeout=self._logout_timeout,
            logger=self._logger,
        )
