import dataclasses
import io
from typing import List

import pytest

from debstanza.decoder import Decoder, loads
from debstanza.exceptions import (
    DecodeExhaustedError,
    FieldConversionError,
    SignatureError,
    ShapeMismatchError,
)
from debstanza.field_codec import (
    STRING,
    UNSIGNED_INTEGER,
    CommaDelimited,
    deb822_field,
    deb822_record,
)
from debstanza.signing import SKIP_VERIFICATION
from debstanza.stanza import Stanza
from tutil import fake_clearsigned


@deb822_record
@dataclasses.dataclass
class Entry:
    name: str = deb822_field(STRING, name="Name")
    size: int = deb822_field(UNSIGNED_INTEGER, name="Size")
    tags: List[str] = deb822_field(CommaDelimited(STRING), name="Tags")


DOCUMENT = """\
Name: first
Size: 1
Tags: a, b

Name: second
Size: 2

# A comment between stanzas

Name: third
"""


def test_loads_single() -> None:
    entry = loads(DOCUMENT, Entry)
    assert entry == Entry("first", 1, ["a", "b"])


def test_loads_many() -> None:
    entries = loads(DOCUMENT, Entry, many=True)
    assert entries == [
        Entry("first", 1, ["a", "b"]),
        Entry("second", 2, []),
        Entry("third", 0, []),
    ]


def test_loads_stanzas() -> None:
    stanzas = loads(DOCUMENT.encode("utf-8"), Stanza, many=True)
    assert [s["Name"] for s in stanzas] == ["first", "second", "third"]
    assert stanzas[0] == Stanza([("Name", "first"), ("Size", "1"), ("Tags", "a, b")])


def test_loads_empty() -> None:
    assert loads("", Entry, many=True) == []
    assert loads("\n\n# only a comment\n", Stanza, many=True) == []
    with pytest.raises(DecodeExhaustedError):
        loads("", Entry)


def test_decoder_one_at_a_time() -> None:
    decoder = Decoder(io.BytesIO(DOCUMENT.encode("utf-8")))
    assert decoder.signer is None
    assert decoder.decode(Entry).name == "first"
    assert decoder.decode(Stanza)["Name"] == "second"
    assert decoder.decode_all(Entry) == [Entry("third", 0, [])]
    with pytest.raises(DecodeExhaustedError) as e_info:
        decoder.decode(Entry)
    assert "Entry" in e_info.value.message


def test_iter_decode_is_lazy() -> None:
    text = "Name: good\nSize: 1\n\nName: bad\nSize: -1\n"
    it = Decoder(text).iter_decode(Entry)
    assert next(it) == Entry("good", 1, [])
    with pytest.raises(FieldConversionError) as e_info:
        next(it)
    assert e_info.value.field_name == "Size"


def test_non_record_target() -> None:
    @dataclasses.dataclass
    class NotARecord:
        name: str = ""

    with pytest.raises(ShapeMismatchError):
        loads(DOCUMENT, NotARecord)
    with pytest.raises(ShapeMismatchError):
        loads("", NotARecord, many=True)
    with pytest.raises(ShapeMismatchError):
        Decoder(DOCUMENT).decode(dict)


def test_signed_input() -> None:
    envelope = fake_clearsigned(DOCUMENT)
    assert loads(envelope, Entry, many=True) == loads(DOCUMENT, Entry, many=True)

    decoder = Decoder(envelope, SKIP_VERIFICATION)
    assert decoder.signer is None
    assert decoder.decode(Entry).name == "first"

    with pytest.raises(SignatureError):
        loads(envelope, Entry, keyring=None)
    with pytest.raises(SignatureError):
        Decoder(envelope)


def test_detached_signature_requires_keyring() -> None:
    with pytest.raises(SignatureError):
        Decoder(DOCUMENT, detached_signature=b"signature")
    decoder = Decoder(DOCUMENT, SKIP_VERIFICATION, detached_signature=b"signature")
    assert decoder.decode_all(Entry)[-1].name == "third"
