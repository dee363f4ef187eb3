import io
from typing import (
    IO,
    Any,
    List,
    Optional,
    Union,
)

from debstanza.field_codec import encode_record
from debstanza.signing import SigningKey
from debstanza.util import _debug


class Encoder:
    """Writes records and stanzas to a stream

    Stanzas are separated by one blank line.  With a signing key the output
    is held back until `close()`, which writes it as a clearsigned document
    (or, with `detach`, writes the plain document and returns the detached
    signature).

    The stream may be a binary or a text stream.
    """

    __slots__ = (
        "_stream",
        "_is_text",
        "_signing_key",
        "_detach",
        "_buffer",
        "_stanzas_written",
        "_closed",
    )

    def __init__(
        self,
        stream: Union[IO[bytes], IO[str]],
        signing_key: Optional[SigningKey] = None,
        *,
        detach: bool = False,
    ) -> None:
        if detach and signing_key is None:
            raise ValueError("A detached signature requires a signing key")
        self._stream = stream
        self._is_text = isinstance(stream, io.TextIOBase)
        self._signing_key = signing_key
        self._detach = detach
        self._buffer: List[str] = []
        self._stanzas_written = 0
        self._closed = False

    def _write(self, text: str) -> None:
        if self._signing_key is not None:
            self._buffer.append(text)
        else:
            self._write_out(text.encode("utf-8"))

    def _write_out(self, data: bytes) -> None:
        if self._is_text:
            self._stream.write(data.decode("utf-8"))
        else:
            self._stream.write(data)

    def encode(self, obj: Any) -> None:
        """Write a record or stanza (or a list/tuple of them)

        :raises ShapeMismatchError: If the object is neither a record nor a stanza
        """
        if self._closed:
            raise ValueError("Cannot encode to a closed encoder")
        if isinstance(obj, (list, tuple)):
            for item in obj:
                self._encode_one(item)
        else:
            self._encode_one(obj)

    def _encode_one(self, obj: Any) -> None:
        stanza = encode_record(obj)
        if not stanza:
            _debug(f"Skipping {type(obj).__name__} without any fields to encode")
            return
        if self._stanzas_written:
            self._write("\n")
        self._write(stanza.dump())
        self._stanzas_written += 1

    def close(self) -> Optional[bytes]:
        """Finish the output

        :return: The armored detached signature when `detach` was requested,
          otherwise None
        """
        if self._closed:
            return None
        self._closed = True
        signing_key = self._signing_key
        if signing_key is None:
            return None
        payload = "".join(self._buffer).encode("utf-8")
        self._buffer.clear()
        if self._detach:
            signature = signing_key.detach_sign(payload)
            self._write_out(payload)
            return signature
        self._write_out(signing_key.clearsign(payload))
        return None

    def __enter__(self) -> "Encoder":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        else:
            # Never sign partial output
            self._closed = True


def dumps(obj: Any, signing_key: Optional[SigningKey] = None) -> bytes:
    """Encode records or stanzas into a (possibly clearsigned) document"""
    output = io.BytesIO()
    encoder = Encoder(output, signing_key)
    encoder.encode(obj)
    encoder.close()
    return output.getvalue()
