"""Key dump parsing: grouping, trailing lines, validity, label checks."""

from __future__ import annotations

import pytest

from chainprobe.errors import ParseError
from chainprobe.keys.parser import KeyRecordParser, chunk

from tests.factories import key_values, make_key_dump, make_key_lines


# ── Well-formed dumps ────────────────────────────────────────────


@pytest.mark.parametrize("count", [0, 1, 2, 5])
def test_complete_groups_yield_valid_records_in_order(count):
    records = KeyRecordParser().parse(make_key_dump(count))

    assert len(records) == count
    assert all(r.is_valid() for r in records)
    assert [r.ss58_address for r in records] == [key_values(i)[5] for i in range(count)]
    assert len({r.ss58_address for r in records}) == count


def test_fields_are_assigned_by_position():
    record = KeyRecordParser().parse(make_key_dump(1))[0]
    phrase, seed, pk_hex, account, pk_ss58, address = key_values(0)

    assert record.secret_phrase == phrase
    assert record.secret_seed == seed
    assert record.public_key_hex == pk_hex
    assert record.account_id == account
    assert record.public_key_ss58 == pk_ss58
    assert record.ss58_address == address


@pytest.mark.parametrize("extra", [0, 1, 3, 5])
def test_trailing_partial_group_is_discarded(extra):
    """6k + r lines parse to exactly k records."""
    text = make_key_dump(2, extra_lines=extra, trailing_newline=False)
    assert len(text.splitlines()) == 12 + extra

    records = KeyRecordParser().parse(text)

    assert len(records) == 2
    assert all(r.is_valid() for r in records)


def test_two_groups_plus_three_lines():
    records = KeyRecordParser().parse(make_key_dump(2, extra_lines=3))
    assert [r.ss58_address for r in records] == [key_values(0)[5], key_values(1)[5]]


def test_crlf_line_endings():
    text = make_key_dump(2).replace("\n", "\r\n")
    records = KeyRecordParser().parse(text)
    assert len(records) == 2
    assert records[1].ss58_address == key_values(1)[5]


def test_chunk_drops_short_tail():
    assert chunk(list("abcdefgh"), 3) == [list("abc"), list("def")]


# ── Malformed content ────────────────────────────────────────────


def test_empty_value_yields_invalid_record():
    lines = make_key_lines(0)
    lines[1] = "Secret seed:"  # no value after the label column
    records = KeyRecordParser().parse("\n".join(lines))

    assert len(records) == 1
    assert not records[0].is_valid()
    assert records[0].missing_fields() == ["secret_seed"]


def test_wrong_label_invalidates_whole_group():
    labels = ("Secret phrase", "Secret seed", "Public key (hex)",
              "Account ID", "SS58 Address", "Public key (SS58)")
    text = "\n".join(make_key_lines(0) + make_key_lines(1, labels=labels))

    records = KeyRecordParser().parse(text)

    assert len(records) == 2
    assert records[0].is_valid()
    assert not records[1].labels_ok
    assert not records[1].is_valid()
    assert records[1].missing_fields() == []


def test_positional_mode_ignores_labels():
    text = "\n".join(f"{'x' * 21}{v}" for v in key_values(4))
    strict = KeyRecordParser().parse(text)
    positional = KeyRecordParser(check_labels=False).parse(text)

    assert not strict[0].is_valid()
    assert positional[0].is_valid()
    assert positional[0].ss58_address == key_values(4)[5]


def test_garbage_never_raises():
    records = KeyRecordParser().parse("\n".join(["?"] * 7))
    assert len(records) == 1
    assert not records[0].is_valid()


def test_secrets_hidden_from_repr():
    record = KeyRecordParser().parse(make_key_dump(1))[0]
    text = repr(record)
    assert record.secret_seed not in text
    assert record.secret_phrase not in text
    assert record.ss58_address in text


# ── Files ────────────────────────────────────────────────────────


def test_parse_file(tmp_path):
    path = tmp_path / "keys.data"
    path.write_text(make_key_dump(3, extra_lines=2))

    records = KeyRecordParser().parse_file(path)

    assert len(records) == 3


def test_missing_file_raises_parse_error(tmp_path):
    with pytest.raises(ParseError):
        KeyRecordParser().parse_file(tmp_path / "nope.data")


def test_undecodable_file_raises_parse_error(tmp_path):
    path = tmp_path / "keys.data"
    path.write_bytes(b"\xff\xfe\xfa" * 40)
    with pytest.raises(ParseError):
        KeyRecordParser().parse_file(path)
