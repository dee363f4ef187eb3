import io
import logging
import textwrap

import pytest
from debian.deb822 import Deb822

from debstanza.exceptions import MalformedLineError, SignatureError
from debstanza.signing import SKIP_VERIFICATION, GpgvKeyring
from debstanza.stanza_reader import StanzaReader
from tutil import fake_clearsigned, read_stanzas

CANONICAL_DOCUMENT = textwrap.dedent(
    """\
    Package: foo
    Version: 1.0-1
    Architecture: amd64
    Depends: libc6 (>= 2.34), libfoo1 (= 1.0-1)
    Description: example package
     The long description of the package.
     .
     It has two paragraphs.

    Package: libfoo1
    Source: foo
    Version: 1.0-1
    Architecture: amd64
    Multi-Arch: same
    Description: example library
    """
)


def test_basic_stanza_reader() -> None:
    stanzas = read_stanzas("Para: one\n\nPara: two\n\nPara: three\n")
    assert [s["Para"] for s in stanzas] == ["one", "two", "three"]


def test_multiple_newlines() -> None:
    stanzas = read_stanzas("\n\nPara: one\n\n\nPara: two\n\nPara: three\n \n\n")
    assert len(stanzas) == 3


def test_whitespace_prefixed_lines() -> None:
    stanzas = read_stanzas(
        "Key1: one\n\t continuation\nKey2: two\n\t tabbed continuation\n \n"
    )
    assert len(stanzas) == 1
    assert stanzas[0]["Key1"] == "one\n continuation\n"
    assert stanzas[0]["Key2"] == "two\n tabbed continuation\n"


def test_continuation_of_empty_value() -> None:
    stanzas = read_stanzas("Files:\n abc 12 foo.dsc\n def 34 foo.tar.xz\n")
    assert stanzas[0]["Files"] == "abc 12 foo.dsc\ndef 34 foo.tar.xz\n"


def test_continuation_dot_lines() -> None:
    stanzas = read_stanzas("Description: short\n one\n .\n two\n")
    assert stanzas[0]["Description"] == "short\none\n\ntwo\n"


def test_comment_lines() -> None:
    stanzas = read_stanzas("# leading comment\nKey1: one\n# comment\nKey2: two\n \n")
    assert len(stanzas) == 1
    assert stanzas[0]["Key1"] == "one"
    assert stanzas[0]["Key2"] == "two"
    assert stanzas[0].order == ["Key1", "Key2"]


def test_trailing_two_character_newlines() -> None:
    stanzas = read_stanzas("Key1: one\r\nKey2: two\r\n\r\nKey1: three\r\n")
    assert len(stanzas) == 2
    assert stanzas[0]["Key1"] == "one"
    assert stanzas[0]["Key2"] == "two"
    assert stanzas[1]["Key1"] == "three"


def test_no_final_newline() -> None:
    stanzas = read_stanzas("Key1: one\nKey2: two")
    assert stanzas[0]["Key2"] == "two"


def test_key_and_value_are_trimmed() -> None:
    stanzas = read_stanzas("Key1 :   one two  \nKey2:three:four\n")
    assert stanzas[0]["Key1"] == "one two"
    assert stanzas[0]["Key2"] == "three:four"


def test_duplicate_keys_overwrite(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="debstanza")
    stanzas = read_stanzas("Key1: one\nKey2: two\nKey1: three\n")
    assert stanzas[0].order == ["Key1", "Key2"]
    assert stanzas[0]["Key1"] == "three"
    assert any("Key1" in r.getMessage() for r in caplog.records)


def test_missing_colon() -> None:
    with pytest.raises(MalformedLineError) as e_info:
        read_stanzas("Key1: one\nnot a field\n")
    assert e_info.value.line_number == 2
    assert "not a field" in e_info.value.message


def test_continuation_without_field() -> None:
    with pytest.raises(MalformedLineError) as e_info:
        read_stanzas("\n continuation\nKey1: one\n")
    assert e_info.value.line_number == 2


def test_continuation_after_stanza_break() -> None:
    with pytest.raises(MalformedLineError) as e_info:
        read_stanzas("Key1: one\n\n continuation\n")
    assert e_info.value.line_number == 3


def test_invalid_utf8() -> None:
    with pytest.raises(MalformedLineError) as e_info:
        read_stanzas(b"Key1: one\nKey2: \xff\xfe\n")
    assert e_info.value.line_number == 2


@pytest.mark.parametrize(
    "source",
    [
        CANONICAL_DOCUMENT,
        CANONICAL_DOCUMENT.encode("utf-8"),
        io.StringIO(CANONICAL_DOCUMENT),
        io.BytesIO(CANONICAL_DOCUMENT.encode("utf-8")),
    ],
    ids=["str", "bytes", "text-file", "binary-file"],
)
def test_input_types(source) -> None:
    stanzas = StanzaReader(source).all()
    assert [s["Package"] for s in stanzas] == ["foo", "libfoo1"]


def test_read_from_file(tmp_path) -> None:
    path = tmp_path / "Packages"
    path.write_text(CANONICAL_DOCUMENT, encoding="utf-8")
    with open(path, "rb") as fd:
        stanzas = StanzaReader(fd).all()
    assert len(stanzas) == 2


def test_next_stanza_exhaustion() -> None:
    reader = StanzaReader("Key: value\n\n\n")
    assert reader.next_stanza() is not None
    assert reader.next_stanza() is None
    assert reader.next_stanza() is None
    assert reader.all() == []
    assert reader.signer is None


def test_empty_input() -> None:
    assert read_stanzas("") == []
    assert read_stanzas(b"\n\n# only a comment\n") == []


def test_round_trip_is_byte_exact() -> None:
    stanzas = read_stanzas(CANONICAL_DOCUMENT)
    assert "\n".join(s.dump() for s in stanzas) == CANONICAL_DOCUMENT


def test_matches_python_debian() -> None:
    stanzas = read_stanzas(CANONICAL_DOCUMENT)
    paragraphs = list(
        Deb822.iter_paragraphs(CANONICAL_DOCUMENT.splitlines(keepends=True))
    )
    assert len(paragraphs) == len(stanzas)
    for paragraph, stanza in zip(paragraphs, stanzas):
        assert list(paragraph.keys()) == stanza.order
        for key in stanza:
            if "\n" not in stanza[key]:
                assert paragraph[key] == stanza[key]


def test_signed_input_requires_keyring() -> None:
    envelope = fake_clearsigned(CANONICAL_DOCUMENT)
    with pytest.raises(SignatureError):
        StanzaReader(envelope)


def test_signed_input_with_empty_keyring() -> None:
    envelope = fake_clearsigned(CANONICAL_DOCUMENT)
    with pytest.raises(SignatureError):
        StanzaReader(envelope, GpgvKeyring([]))


def test_signed_input_without_verification() -> None:
    envelope = fake_clearsigned(CANONICAL_DOCUMENT)
    reader = StanzaReader(envelope, SKIP_VERIFICATION)
    assert reader.signer is None
    assert reader.all() == read_stanzas(CANONICAL_DOCUMENT)


def test_signed_input_is_dash_unescaped() -> None:
    envelope = fake_clearsigned("Key: one\n-----BEGIN not really\n")
    # A line starting with "-" is not a valid field line either way, but it
    # must arrive at the parser without the "- " escape.
    with pytest.raises(MalformedLineError) as e_info:
        StanzaReader(io.BytesIO(envelope), SKIP_VERIFICATION).all()
    assert '"-----BEGIN not really"' in e_info.value.message


@pytest.mark.parametrize(
    "envelope",
    [
        b"-----BEGIN PGP SIGNED MESSAGE-----\nHash: SHA256\n\nKey: value\n",
        b"-----BEGIN PGP SIGNED MESSAGE-----\nHash: SHA256\n",
        b"-----BEGIN PGP MESSAGE-----\n\nowGbwMvMwMEYsOPU\n-----END PGP MESSAGE-----\n",
        b"-----BEGIN PGP SIGNED MESSAGE-----\nHash: SHA256\n\nKey: value\n-----BEGIN PGP SIGNATURE-----\n\nabc\n",
    ],
)
def test_malformed_envelope(envelope: bytes) -> None:
    with pytest.raises(SignatureError):
        StanzaReader(envelope, SKIP_VERIFICATION)
