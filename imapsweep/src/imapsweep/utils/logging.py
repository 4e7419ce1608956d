"""Structured JSON log lines with credential redaction.

What:
  Offer a small facade over a text stream so every imapsweep component emits
  one JSON object per line with consistent fields, and never writes secrets
  from account configuration.

Why:
  imapsweep runs unattended (cron, systemd timers). Its logs are the only
  record of what was copied and flagged, so they must be easy to grep and
  parse, and must be safe to ship to shared log storage even though the
  processors handle passwords.

How:
  :class:`JsonLogger` builds a payload with ``ts``, ``lvl``, ``msg`` and
  ``component``, merges a recursively redacted copy of the keyword arguments
  and writes it with :func:`json.dumps`. Values that are not JSON types
  (exceptions, paths) are written through ``str``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - ``password``, ``secret`` and ``credentials`` keys are replaced with
    ``[redacted]`` at any depth.
  - Streams are flushed after every line.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "secret", "credentials"})


@dataclass
class JsonLogger:
    """Structured JSON logger bound to one component.

    ``stream`` is resolved at write time when left unset so that test
    harnesses capturing ``sys.stderr`` see the output.
    """

    component: str = "imapsweep"
    stream: Optional[TextIO] = field(default=None)

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(json.dumps(payload, separators=(",", ":"), default=str))
        stream.write("\n")
        stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive keys masked at any depth."""

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Return a :class:`JsonLogger` writing to ``stderr`` for ``component``."""

    return JsonLogger(component=component)
