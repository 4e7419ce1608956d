"""Unit tests for the YAML document loader.

What:
  Check the model built from a representative document, the locations kept
  on every node, and the errors raised for malformed documents.

Why:
  Every later diagnostic points at the location recorded here, and unknown
  keys must be rejected instead of silently dropping part of a rule.
"""

import textwrap
from datetime import date

import pytest

from imapsweep.config import Precondition, Value, load_config, parse_config
from imapsweep.errors import DocumentError

DOCUMENT = textwrap.dedent(
    """\
    servers:
      - host: imap.example.org:1993
        notls: true
        nosaslexternal: true
        username: alice
        password: 0123
        identity: admin
        mailboxes:
          - name: INBOX
            rules:
              - preconditions:
                  - field: SINCE
                    values: [2024-03-05]
                  - field: OR
                    values:
                      - field: FROM
                        values: [a@example.org]
                      - field: SEEN
                action:
                  move: [Archive]
    """
)


def test_document_is_parsed_into_the_model():
    config = parse_config(DOCUMENT, "config.yaml")

    (account,) = config.accounts
    assert config.source == "config.yaml"
    assert account.host == "imap.example.org:1993"
    assert account.flags.no_tls is True
    assert account.flags.no_sasl_external is True
    assert account.flags.no_sasl_plain is False
    assert account.credentials.username == "alice"
    assert account.credentials.password == "0123"
    assert account.credentials.identity == "admin"

    (mailbox,) = account.mailboxes
    (rule,) = mailbox.rules
    since, either = rule.preconditions
    assert since.field == "SINCE"
    assert since.values[0].data == date(2024, 3, 5)
    assert since.values[0].text == "2024-03-05"
    assert [type(child) for child in either.values] == [Precondition, Precondition]
    assert rule.actions[0].kind == "move"
    assert [arg.text for arg in rule.actions[0].arguments] == ["Archive"]


def test_locations_are_one_based_line_and_column():
    config = parse_config(DOCUMENT, "config.yaml")
    account = config.accounts[0]
    rule = account.mailboxes[0].rules[0]

    assert (account.location.line, account.location.column) == (2, 5)
    assert (rule.preconditions[0].location.line, rule.preconditions[0].location.column) == (12, 17)
    assert str(rule.actions[0].location) == "config.yaml:20.15"


def test_password_is_not_part_of_the_repr():
    config = parse_config(DOCUMENT, "config.yaml")

    assert "0123" not in repr(config.accounts[0].credentials)


def test_models_are_immutable():
    config = parse_config(DOCUMENT)

    with pytest.raises(Exception):
        config.accounts[0].host = "other"


def test_mapping_where_a_leaf_is_expected_becomes_nested_precondition():
    config = parse_config(
        "servers:\n"
        "  - host: h\n"
        "    mailboxes:\n"
        "      - name: INBOX\n"
        "        rules:\n"
        "          - preconditions:\n"
        "              - field: NOT\n"
        "                values:\n"
        "                  - {field: SEEN}\n"
    )
    (child,) = config.accounts[0].mailboxes[0].rules[0].preconditions[0].values

    assert isinstance(child, Precondition)
    assert child.field == "SEEN"


def test_sequence_value_is_kept_as_non_scalar():
    config = parse_config(
        "servers:\n"
        "  - host: h\n"
        "    mailboxes:\n"
        "      - name: INBOX\n"
        "        rules:\n"
        "          - preconditions:\n"
        "              - field: SUBJECT\n"
        "                values: [[a, b]]\n"
    )
    (leaf,) = config.accounts[0].mailboxes[0].rules[0].preconditions[0].values

    assert isinstance(leaf, Value)
    assert leaf.scalar is False


def test_empty_servers_list_is_valid():
    assert parse_config("servers: []\n").accounts == ()


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("", "document is empty"),
        ("servers: []\nextra: 1\n", "unsupported key 'extra' in document"),
        ("servers:\n  - host: h\n    port: 993\n", "unsupported key 'port' in server"),
        ("servers:\n  - username: u\n", "server requires a host"),
        ("servers:\n  - host: h\n    notls: maybe\n", "invalid server flags"),
        ("servers: {}\n", "servers must be a list"),
        ("servers: []\nservers: []\n", "duplicate key 'servers'"),
        ("servers: [\n", "invalid YAML"),
    ],
)
def test_malformed_documents_are_rejected(text, fragment):
    with pytest.raises(DocumentError) as excinfo:
        parse_config(text, "config.yaml")

    assert fragment in str(excinfo.value)


def test_unknown_rule_key_carries_location():
    text = (
        "servers:\n"
        "  - host: h\n"
        "    mailboxes:\n"
        "      - name: INBOX\n"
        "        rules:\n"
        "          - preconditions: []\n"
        "            actions: {move: [x]}\n"
    )

    with pytest.raises(DocumentError) as excinfo:
        parse_config(text, "config.yaml")

    assert excinfo.value.location.line == 7


def test_duplicate_action_kind_is_rejected():
    text = (
        "servers:\n"
        "  - host: h\n"
        "    mailboxes:\n"
        "      - name: INBOX\n"
        "        rules:\n"
        "          - action:\n"
        "              move: [a]\n"
        "              move: [b]\n"
    )

    with pytest.raises(DocumentError, match="duplicate action 'move'"):
        parse_config(text)


def test_load_config_reads_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(DOCUMENT, encoding="utf-8")

    config = load_config(path)

    assert config.source == str(path)
    assert config.accounts[0].location.path == str(path)


def test_load_config_reports_missing_file(tmp_path):
    with pytest.raises(DocumentError, match="configuration file missing"):
        load_config(tmp_path / "absent.yaml")
