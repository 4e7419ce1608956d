"""Facade for the IMAP integration layer.

What:
  Surface the live processor family, the session wrapper and the TLS context
  builder.

Why:
  The CLI wires the live pass from these names only; the rest of the package
  never imports ``imapclient`` directly.

Interfaces:
  ``ImapSession``, ``LiveConfigProcessor``, ``build_ssl_context``.
"""

from .client import ImapSession
from .processors import LiveConfigProcessor
from .truststore import build_ssl_context

__all__ = ["ImapSession", "LiveConfigProcessor", "build_ssl_context"]
