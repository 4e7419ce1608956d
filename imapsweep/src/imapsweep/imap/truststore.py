"""Build the TLS context used for every IMAP connection.

What:
  Start from the system trust store and add the certificates of an optional
  PEM bundle (``ca.pem``), typically a private CA for self-hosted servers.

Why:
  A bundle that is only partly usable is a configuration error: silently
  skipping a broken certificate would turn into a confusing TLS failure later,
  in the middle of the live pass.

How:
  Split the bundle into PEM blocks, feed every ``CERTIFICATE`` block to
  :meth:`ssl.SSLContext.load_verify_locations` and collect one error per
  unusable block. All collected errors are raised together as a
  :class:`~imapsweep.errors.TrustStoreError`.

Interfaces:
  :func:`build_ssl_context`.
"""
from __future__ import annotations

import re
import ssl
from pathlib import Path
from typing import List, Optional

from ..errors import TrustStoreError

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<kind>[A-Z0-9 ]+)-----\s*(?P<body>.*?)\s*-----END (?P=kind)-----",
    re.DOTALL,
)


def build_ssl_context(ca_file: Optional[Path] = None) -> ssl.SSLContext:
    """Return a client TLS context trusting the system store plus ``ca_file``.

    A missing ``ca_file`` is not an error.

    Raises:
      TrustStoreError: The bundle cannot be read, contains non-certificate
        blocks or certificates that do not load.
    """

    context = ssl.create_default_context()
    if ca_file is None:
        return context
    try:
        text = Path(ca_file).read_text(encoding="ascii")
    except FileNotFoundError:
        return context
    except (OSError, UnicodeDecodeError) as exc:
        raise TrustStoreError(f"unable to read {ca_file}: {exc}") from exc

    problems: List[str] = []
    for index, block in enumerate(_PEM_BLOCK.finditer(text), start=1):
        kind = block.group("kind")
        if kind != "CERTIFICATE":
            problems.append(f"{ca_file}: block {index}: pem type {kind} not supported")
            continue
        try:
            context.load_verify_locations(cadata=block.group(0))
        except (ssl.SSLError, ValueError) as exc:
            problems.append(f"{ca_file}: block {index}: {exc}")
    if problems:
        raise TrustStoreError("\n".join(problems))
    return context
