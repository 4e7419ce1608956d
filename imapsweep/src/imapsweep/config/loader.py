"""Strict loader for the imapsweep YAML document.

What:
  Read ``config.yaml``, parse it with PyYAML and turn it into the immutable
  :class:`~imapsweep.config.schema.SweepConfig` tree, keeping the line/column
  of every account, mailbox, rule, precondition and value.

Why:
  Compile and action errors are reported long after parsing, during the
  validation pass. They can only point the operator at the offending line if
  the model remembers where each node came from, which ``yaml.safe_load``
  throws away.

How:
  Compose the document into a PyYAML node graph (``yaml.compose``), walk the
  graph with :class:`_DocumentReader`, check keys against an explicit
  whitelist per level, and validate each level through the Pydantic models.
  String fields take the scalar text as written so that passwords such as
  ``0123`` are not reinterpreted as integers; other scalars go through
  PyYAML's safe constructor.

Interfaces:
  :func:`load_config`, :func:`parse_config`.

Invariants:
  - Every failure surfaces as :class:`~imapsweep.errors.DocumentError` and,
    where a node is involved, carries its location.
  - Unknown keys are rejected at every level.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

import yaml
from pydantic import ValidationError as _PydanticValidationError
from yaml.constructor import SafeConstructor
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from ..errors import DocumentError
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

_ROOT_KEYS = {"servers"}
_ACCOUNT_KEYS = {
    "host",
    "notls",
    "nosimplelogin",
    "nosaslplain",
    "nosaslexternal",
    "username",
    "password",
    "identity",
    "mailboxes",
}
_FLAG_KEYS = {
    "notls": "no_tls",
    "nosimplelogin": "no_simple_login",
    "nosaslplain": "no_sasl_plain",
    "nosaslexternal": "no_sasl_external",
}
_MAILBOX_KEYS = {"name", "rules"}
_RULE_KEYS = {"preconditions", "action"}
_PRECONDITION_KEYS = {"field", "values"}

_NULL_TAG = "tag:yaml.org,2002:null"


class _DocumentReader:
    """Walk a composed YAML node graph and build the sweep model."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._constructor = SafeConstructor()

    def location(self, node: Node) -> Location:
        mark = node.start_mark
        return Location(path=self._source, line=mark.line + 1, column=mark.column + 1)

    def _is_null(self, node: Node) -> bool:
        return isinstance(node, ScalarNode) and node.tag == _NULL_TAG

    def _mapping(self, node: Node, what: str, allowed: Set[str]) -> Dict[str, Node]:
        if not isinstance(node, MappingNode):
            raise DocumentError(f"{what} must be a mapping", self.location(node))
        entries: Dict[str, Node] = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, ScalarNode):
                raise DocumentError(f"{what} keys must be scalars", self.location(key_node))
            key = key_node.value
            if key in entries:
                raise DocumentError(f"duplicate key '{key}' in {what}", self.location(key_node))
            if key not in allowed:
                raise DocumentError(f"unsupported key '{key}' in {what}", self.location(key_node))
            entries[key] = value_node
        return entries

    def _sequence(self, node: Optional[Node], what: str) -> List[Node]:
        if node is None or self._is_null(node):
            return []
        if not isinstance(node, SequenceNode):
            raise DocumentError(f"{what} must be a list", self.location(node))
        return list(node.value)

    def _text(self, node: Optional[Node], what: str) -> Optional[str]:
        if node is None or self._is_null(node):
            return None
        if not isinstance(node, ScalarNode):
            raise DocumentError(f"{what} must be a scalar", self.location(node))
        return node.value

    def _data(self, node: Node) -> Any:
        try:
            return self._constructor.construct_object(node, deep=True)
        except (yaml.YAMLError, ValueError) as exc:
            raise DocumentError(f"invalid value: {exc}", self.location(node)) from exc

    def _validate(self, model: Any, payload: Dict[str, Any], node: Node, what: str) -> Any:
        try:
            return model.model_validate(payload)
        except _PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            raise DocumentError(f"invalid {what}: {problems}", self.location(node)) from exc

    def config(self, root: Optional[Node]) -> SweepConfig:
        if root is None or self._is_null(root):
            raise DocumentError(f"{self._source}: document is empty")
        entries = self._mapping(root, "document", _ROOT_KEYS)
        accounts = tuple(
            self.account(node) for node in self._sequence(entries.get("servers"), "servers")
        )
        return SweepConfig(source=self._source, accounts=accounts)

    def account(self, node: Node) -> Account:
        entries = self._mapping(node, "server", _ACCOUNT_KEYS)
        host = self._text(entries.get("host"), "host")
        if not host:
            raise DocumentError("server requires a host", self.location(node))
        flags = {
            field: self._data(entries[key])
            for key, field in _FLAG_KEYS.items()
            if key in entries and not self._is_null(entries[key])
        }
        credentials = {
            key: text
            for key in ("username", "password", "identity")
            if (text := self._text(entries.get(key), key)) is not None
        }
        mailboxes = tuple(
            self.mailbox(child)
            for child in self._sequence(entries.get("mailboxes"), "mailboxes")
        )
        return self._validate(
            Account,
            {
                "host": host,
                "flags": self._validate(CapabilityFlags, flags, node, "server flags"),
                "credentials": Credentials(**credentials),
                "mailboxes": mailboxes,
                "location": self.location(node),
            },
            node,
            "server",
        )

    def mailbox(self, node: Node) -> Mailbox:
        entries = self._mapping(node, "mailbox", _MAILBOX_KEYS)
        name = self._text(entries.get("name"), "name")
        if not name:
            raise DocumentError("mailbox requires a name", self.location(node))
        rules = tuple(self.rule(child) for child in self._sequence(entries.get("rules"), "rules"))
        return Mailbox(name=name, rules=rules, location=self.location(node))

    def rule(self, node: Node) -> Rule:
        entries = self._mapping(node, "rule", _RULE_KEYS)
        preconditions = tuple(
            self.precondition(child)
            for child in self._sequence(entries.get("preconditions"), "preconditions")
        )
        actions: Tuple[Action, ...] = ()
        action_node = entries.get("action")
        if action_node is not None and not self._is_null(action_node):
            if not isinstance(action_node, MappingNode):
                raise DocumentError("action must be a mapping", self.location(action_node))
            actions = tuple(self.action(key, value) for key, value in action_node.value)
            kinds = [action.kind for action in actions]
            for action in actions:
                if kinds.count(action.kind) > 1:
                    raise DocumentError(f"duplicate action '{action.kind}'", action.location)
        return Rule(preconditions=preconditions, actions=actions, location=self.location(node))

    def action(self, key_node: Node, value_node: Node) -> Action:
        kind = self._text(key_node, "action kind")
        if kind is None:
            raise DocumentError("action kind must not be empty", self.location(key_node))
        arguments = tuple(
            self.value(child) for child in self._sequence(value_node, f"action {kind}")
        )
        return Action(kind=kind, arguments=arguments, location=self.location(key_node))

    def precondition(self, node: Node) -> Precondition:
        entries = self._mapping(node, "precondition", _PRECONDITION_KEYS)
        field = self._text(entries.get("field"), "field")
        if not field:
            raise DocumentError("precondition requires a field", self.location(node))
        values: List[Union[Value, Precondition]] = []
        for child in self._sequence(entries.get("values"), "values"):
            if isinstance(child, MappingNode):
                values.append(self.precondition(child))
            else:
                values.append(self.value(child))
        return Precondition(field=field, values=tuple(values), location=self.location(node))

    def value(self, node: Node) -> Value:
        if isinstance(node, ScalarNode):
            try:
                data = self._data(node)
            except DocumentError:
                # Left for the compiler to reject with the field name attached.
                data = node.value
            return Value(text=node.value, data=data, location=self.location(node))
        return Value(
            text=yaml.serialize(node).strip(),
            data=self._data(node),
            scalar=False,
            location=self.location(node),
        )


def parse_config(text: str, source: str = "<string>") -> SweepConfig:
    """Parse YAML ``text`` into a :class:`SweepConfig`.

    Args:
      text: Document contents.
      source: Name used as the path part of every location.

    Raises:
      DocumentError: On YAML syntax errors, structural problems or invalid
        scalar types.
    """

    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.MarkedYAMLError as exc:
        mark = exc.problem_mark or exc.context_mark
        location = None
        if mark is not None:
            location = Location(path=source, line=mark.line + 1, column=mark.column + 1)
        raise DocumentError(f"invalid YAML: {exc.problem or exc}", location) from exc
    except yaml.YAMLError as exc:
        raise DocumentError(f"{source}: invalid YAML: {exc}") from exc
    return _DocumentReader(source).config(root)


def load_config(path: Union[Path, str]) -> SweepConfig:
    """Read and parse the document stored at ``path``.

    Raises:
      DocumentError: If the file cannot be read or does not describe a valid
        sweep.
    """

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentError(f"configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise DocumentError(f"unable to read configuration file {path}: {exc}") from exc
    return parse_config(text, str(path))
