"""Pydantic models describing the imapsweep document."""
from __future__ import annotations

from typing import Any, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """Line/column provenance of a document node (1-based)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    line: int = Field(ge=1)
    column: int = Field(ge=1)

    def __str__(self) -> str:
        return f"{self.path}:{self.line}.{self.column}"


class Value(BaseModel):
    """Leaf argument of a precondition or an action.

    ``text`` is the scalar exactly as written, ``data`` the object YAML
    resolved it to (``int``, ``date``, ``str`` ...). Sequences and mappings
    given where a leaf is expected are kept with ``scalar=False`` so that the
    compiler can report them as decode failures with their location.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str
    data: Any = None
    scalar: bool = True
    location: Location


class Precondition(BaseModel):
    """Search criterion: a field tag and its ordered argument nodes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str
    values: Tuple[Union[Value, "Precondition"], ...] = ()
    location: Location


class Action(BaseModel):
    """One entry of a rule's action map."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: str
    arguments: Tuple[Value, ...] = ()
    location: Location


class Rule(BaseModel):
    """Preconditions selecting messages and the actions applied to them."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    preconditions: Tuple[Precondition, ...] = ()
    actions: Tuple[Action, ...] = ()
    location: Location


class Mailbox(BaseModel):
    """A folder on an account and the rules run against it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    rules: Tuple[Rule, ...] = ()
    location: Location


class CapabilityFlags(BaseModel):
    """Switches disabling transport security or authentication schemes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    no_tls: bool = False
    no_simple_login: bool = False
    no_sasl_plain: bool = False
    no_sasl_external: bool = False


class Credentials(BaseModel):
    """Login material; ``identity`` is the SASL authorisation identity."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    username: str = ""
    password: str = Field(default="", repr=False)
    identity: str = ""


class Account(BaseModel):
    """One IMAP endpoint with its credentials and mailboxes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str
    flags: CapabilityFlags = Field(default_factory=CapabilityFlags)
    credentials: Credentials = Field(default_factory=Credentials)
    mailboxes: Tuple[Mailbox, ...] = ()
    location: Location


class SweepConfig(BaseModel):
    """Root of the document: the ordered list of accounts."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: str
    accounts: Tuple[Account, ...] = ()


Precondition.model_rebuild()
