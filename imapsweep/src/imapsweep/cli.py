"""imapsweep command-line entry point.

What:
  Provide the Typer application that runs one sweep: read the document from
  the configuration home, validate it offline, then execute it against the
  configured servers.

Why:
  The job is meant for cron and systemd timers. It takes no arguments so that
  every invocation reads the same files, and it reports through the exit code
  and one error per line on stderr so that the scheduler's mail or journal
  shows exactly what went wrong.

How:
  Resolve :class:`~imapsweep.settings.Settings`, build the TLS context from
  the optional ``ca.pem``, load the document and hand it to
  :func:`~imapsweep.core.orchestrator.run` with the live processor family.
  Errors of the validation pass are prefixed with ``[dry run]``.

Interfaces:
  ``app`` (Typer application), ``sweep``, ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - No connection is opened when the document or the trust store is invalid,
    or when the validation pass reported an error.
"""
from __future__ import annotations

import logging
from typing import Iterable

import typer

from .config import load_config
from .core import run
from .errors import DocumentError, RunFailed, TrustStoreError, ValidationFailed
from .imap import LiveConfigProcessor, build_ssl_context
from .settings import Settings

LOGGER = logging.getLogger("imapsweep.cli")
DRY_RUN_PREFIX = "[dry run] "

app = typer.Typer(help="Move matching messages between IMAP mailboxes.")


def _report(errors: Iterable[BaseException], prefix: str = "") -> None:
    for error in errors:
        for line in str(error).splitlines():
            typer.echo(f"{prefix}{line}", err=True)


@app.command()
def sweep() -> None:
    """Validate the sweep document, then execute it against every account.

    What:
      Run the two passes over ``<config home>/imapsweep/config.yaml``.

    Why:
      Mutating mail is irreversible, so the live pass is gated on a clean
      validation pass.

    How:
      Load settings, trust store and document, then delegate to
      :func:`~imapsweep.core.orchestrator.run`. Every failure is mapped to
      exit code ``1`` after its errors were written to stderr.
    """

    settings = Settings.resolve()
    try:
        ssl_context = build_ssl_context(settings.ca_file)
        config = load_config(settings.config_file)
    except (TrustStoreError, DocumentError) as exc:
        LOGGER.error("startup_failed: %s", exc)
        _report([exc])
        raise typer.Exit(code=1) from exc

    live = LiveConfigProcessor(
        ssl_context=ssl_context,
        logout_timeout=settings.logout_timeout,
    )
    try:
        run(config, live)
    except ValidationFailed as exc:
        _report(exc.errors, prefix=DRY_RUN_PREFIX)
        raise typer.Exit(code=1) from exc
    except RunFailed as exc:
        _report(exc.errors)
        raise typer.Exit(code=1) from exc


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
