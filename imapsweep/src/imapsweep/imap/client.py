"""IMAP session wrapper around ``imapclient``.

What:
  Own one :class:`imapclient.IMAPClient` connection for an account: dial it
  (implicit TLS or plain with STARTTLS upgrade), authenticate it following the
  configured scheme order, and expose the handful of commands the live
  processors issue (SELECT, SEARCH, COPY, STORE, CLOSE, LOGOUT).

Why:
  ``imapclient`` reports failures through a mix of ``imaplib`` errors, socket
  errors and SSL errors. The orchestrator only needs to know that an IMAP
  operation failed and which one, so every call goes through one translation
  point that raises :class:`~imapsweep.errors.ProtocolError`.

How:
  :meth:`ImapSession.open` parses ``host[:port]``, constructs the client,
  upgrades with STARTTLS when the plain server offers it and runs
  :meth:`ImapSession.authenticate`. Command helpers wrap the client call in
  :meth:`ImapSession._call`. Search tokens are passed to ``IMAPClient.search``
  with every group delimited by :data:`~imapsweep.core.preconditions.GROUP_OPEN`
  and :data:`~imapsweep.core.preconditions.GROUP_CLOSE` turned into a nested
  list, which is how ``imapclient`` expresses parenthesised criteria. Criteria
  holding non-ASCII text are sent with the ``UTF-8`` charset.

Interfaces:
  :data:`LOGOUT_TIMEOUT`, :func:`split_host`, :func:`nest_groups`,
  :class:`ImapSession`.

Invariants & Safety:
  - Authentication schemes run in the order SASL EXTERNAL, SASL PLAIN, LOGIN,
    each only while the session is still unauthenticated.
  - Passwords are never logged.
  - Only LOGOUT is bounded by a timeout.
"""
from __future__ import annotations

import ssl
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from imapclient import DELETED, IMAPClient
from imapclient.exceptions import IMAPClientError

from ..config.schema import CapabilityFlags, Credentials
from ..core.preconditions import GROUP_CLOSE, GROUP_OPEN
from ..errors import AuthenticationError, ProtocolError
from ..utils.logging import JsonLogger, get_logger

LOGOUT_TIMEOUT = 1000.0
IMAPS_PORT = 993
IMAP_PORT = 143

Criteria = List[Union[str, "Criteria"]]


def split_host(host: str, *, tls: bool) -> Tuple[str, int]:
    """Split ``host[:port]`` and fall back to the IMAP/IMAPS default port.

    Bracketed IPv6 literals (``[::1]:993``) are supported.
    """

    default = IMAPS_PORT if tls else IMAP_PORT
    if host.startswith("["):
        name, _, rest = host[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif host.count(":") == 1:
        name, port = host.split(":")
    else:
        name, port = host, ""
    if not port:
        return name, default
    if not port.isdigit():
        raise ProtocolError("dial", f"invalid port in {host!r}")
    return name, int(port)


def nest_groups(tokens: Sequence[str]) -> Criteria:
    """Turn delimited token groups into nested lists for ``IMAPClient.search``.

    Delimiters are matched by identity, so a search value that reads ``(`` or
    ``)`` stays a value.
    """

    stack: List[Criteria] = [[]]
    for token in tokens:
        if token is GROUP_OPEN:
            group: Criteria = []
            stack[-1].append(group)
            stack.append(group)
        elif token is GROUP_CLOSE:
            if len(stack) == 1:
                raise ProtocolError("search", "unbalanced ')' in search criteria")
            stack.pop()
        else:
            stack[-1].append(token)
    if len(stack) != 1:
        raise ProtocolError("search", "unbalanced '(' in search criteria")
    return stack[0]


class ImapSession:
    """One authenticated IMAP connection.

    What:
      Hold the ``IMAPClient`` of an account together with the host label used
      in errors and logs.

    Why:
      The account, mailbox and rule processors of the live family all share
      the same connection; keeping it in one object gives them a single place
      for error translation and logging.

    How:
      Construct through :meth:`open`; every command helper goes through
      :meth:`_call`.
    """

    def __init__(self, client: IMAPClient, host: str, *, logger: Optional[JsonLogger] = None):
        self._client = client
        self._host = host
        self._logger = logger or get_logger("imapsweep.imap")

    @property
    def client(self) -> IMAPClient:
        return self._client

    @property
    def host(self) -> str:
        return self._host

    @classmethod
    def open(
        cls,
        host: str,
        flags: CapabilityFlags,
        credentials: Credentials,
        *,
        ssl_context: Optional[ssl.SSLContext] = None,
        logger: Optional[JsonLogger] = None,
    ) -> "ImapSession":
        """Dial ``host``, secure the transport and authenticate.

        What:
          Produce a session that is ready for SELECT.

        Why:
          Connection set-up has a fixed order (dial, STARTTLS, authentication)
          that every account follows; keeping it in one constructor keeps the
          account processor trivial.

        How:
          Dial with implicit TLS unless ``flags.no_tls``; on a plain connection
          upgrade with STARTTLS when the server advertises it; then run
          :meth:`authenticate`. If authentication fails the socket is shut
          down before the error propagates.

        Raises:
          ProtocolError: Dialling or the STARTTLS upgrade failed.
          AuthenticationError: No enabled scheme succeeded.
        """

        tls = not flags.no_tls
        name, port = split_host(host, tls=tls)
        logger = logger or get_logger("imapsweep.imap")
        try:
            client = IMAPClient(name, port=port, ssl=tls, ssl_context=ssl_context)
        except (IMAPClientError, OSError) as exc:
            raise ProtocolError("dial", f"{host}: {exc}") from exc
        session = cls(client, host, logger=logger)
        try:
            if not tls and session._call("capability", client.has_capability, "STARTTLS"):
                session._call("starttls", client.starttls, ssl_context)
            session.authenticate(flags, credentials)
        except (ProtocolError, AuthenticationError):
            session.shutdown()
            raise
        logger.info("connected", host=host, port=port, tls=tls)
        return session

    def authenticate(self, flags: CapabilityFlags, credentials: Credentials) -> None:
        """Try the enabled authentication schemes until one succeeds.

        Raises:
          AuthenticationError: Every enabled scheme failed, or none is enabled.
        """

        attempts: List[Tuple[str, Callable[[], Any]]] = []
        if not flags.no_sasl_external:
            attempts.append(
                ("sasl external", lambda: self._client.sasl_login("EXTERNAL", lambda _: b""))
            )
        if not flags.no_sasl_plain:
            attempts.append(
                (
                    "sasl plain",
                    lambda: self._client.plain_login(
                        credentials.username,
                        credentials.password,
                        credentials.identity or None,
                    ),
                )
            )
        if not flags.no_simple_login:
            attempts.append(
                ("login", lambda: self._client.login(credentials.username, credentials.password))
            )

        for scheme, attempt in attempts:
            try:
                attempt()
            except (IMAPClientError, OSError) as exc:
                self._logger.warning(
                    "authentication attempt failed", host=self._host, scheme=scheme, error=str(exc)
                )
                continue
            self._logger.info("authenticated", host=self._host, scheme=scheme)
            return
        raise AuthenticationError(self._host)

    def _call(self, operation: str, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return method(*args, **kwargs)
        except (IMAPClientError, OSError, UnicodeError) as exc:
            raise ProtocolError(operation, f"{self._host}: {exc}") from exc

    def select(self, mailbox: str) -> None:
        self._call("select", self._client.select_folder, mailbox, readonly=False)
        self._logger.info("mailbox selected", host=self._host, mailbox=mailbox)

    def search(self, tokens: Sequence[str]) -> List[int]:
        criteria = nest_groups(tokens) if tokens else ["ALL"]
        charset = None if all(token.isascii() for token in tokens) else "UTF-8"
        found = list(self._call("search", self._client.search, criteria, charset=charset))
        self._logger.info("search finished", host=self._host, criteria=list(tokens), matches=len(found))
        return found

    def copy(self, messages: Sequence[int], destination: str) -> None:
        self._call("copy", self._client.copy, list(messages), destination)
        self._logger.info(
            "messages copied", host=self._host, destination=destination, count=len(messages)
        )

    def mark_deleted(self, messages: Sequence[int]) -> None:
        self._call("store", self._client.add_flags, list(messages), [DELETED], silent=True)
        self._logger.info("messages flagged deleted", host=self._host, count=len(messages))

    def close_folder(self) -> None:
        self._call("close", self._client.close_folder)

    def logout(self, timeout: float = LOGOUT_TIMEOUT) -> None:
        """Send LOGOUT, waiting at most ``timeout`` seconds for the server."""

        self._call("logout", self._client.socket().settimeout, timeout)
        self._call("logout", self._client.logout)
        self._logger.info("logged out", host=self._host)

    def shutdown(self) -> None:
        """Drop the connection without LOGOUT after a failed set-up."""

        try:
            self._client.shutdown()
        except OSError as exc:  # pragma: no cover - socket already gone
            self._logger.warning("shutdown failed", host=self._host, error=str(exc))
