"""Document model and loader for imapsweep.

What:
  Provide the import surface for reading the YAML document and the immutable
  Pydantic tree it produces.

Why:
  Callers (the CLI and the tests) should not depend on the module layout, and
  should only ever see a validated tree.

How:
  Re-export :func:`load_config` / :func:`parse_config` and the schema classes.

Interfaces:
  - load_config / parse_config: Read and validate the document.
  - SweepConfig, Account, Mailbox, Rule, Action, Precondition, Value,
    CapabilityFlags, Credentials, Location: The model tree.
"""

from .loader import load_config, parse_config
from .schema import (
    Account,
    Action,
    CapabilityFlags,
    Credentials,
    Location,
    Mailbox,
    Precondition,
    Rule,
    SweepConfig,
    Value,
)

__all__ = [
    "load_config",
    "parse_config",
    "SweepConfig",
    "Account",
    "Mailbox",
    "Rule",
    "Action",
    "Precondition",
    "Value",
    "CapabilityFlags",
    "Credentials",
    "Location",
]
