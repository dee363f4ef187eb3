import io
from typing import (
    IO,
    Iterator,
    List,
    Optional,
    Union,
)

from debstanza.exceptions import MalformedLineError
from debstanza.signing import Keyring, SignerIdentity, check_keyring
from debstanza.stanza import Stanza
from debstanza.util import _debug, _info

ENVELOPE_PREAMBLE = "-----BEGIN PGP "

StanzaSource = Union[bytes, str, IO[bytes], IO[str]]


def _as_bytes(line: Union[str, bytes]) -> bytes:
    if isinstance(line, str):
        return line.encode("utf-8")
    return line


def _open_lines(stream: StanzaSource) -> Iterator[Union[str, bytes]]:
    if isinstance(stream, bytes):
        return iter(io.BytesIO(stream))
    if isinstance(stream, str):
        return iter(io.StringIO(stream))
    return iter(stream)


class StanzaReader:
    """Reads deb822 stanzas one at a time from a stream

    If the stream is wrapped in an OpenPGP envelope, the envelope is checked
    with `keyring` before any stanza is read.  Pass `SKIP_VERIFICATION` to
    read signed documents without checking the signature.

    :param stream: The input as bytes, str or a (binary or text) file object
    :param keyring: The keyring used to verify signed input
    :param detached_signature: A detached signature for the entire input.  When
      provided, the input is verified against it before parsing.
    """

    __slots__ = ("_lines", "_line_number", "_signer", "_stanza_count")

    def __init__(
        self,
        stream: StanzaSource,
        keyring: Optional[Keyring] = None,
        *,
        detached_signature: Optional[bytes] = None,
    ) -> None:
        self._lines: Iterator[Union[str, bytes]]
        self._line_number = 0
        self._signer: Optional[SignerIdentity] = None
        self._stanza_count = 0
        lines = _open_lines(stream)

        if detached_signature is not None:
            data = b"".join(_as_bytes(line) for line in lines)
            verifier = check_keyring(keyring)
            self._signer = verifier.verify_detached(data, detached_signature)
            self._log_signer()
            self._lines = _open_lines(data)
            return

        first_line = next(lines, None)
        if first_line is None:
            self._lines = iter(())
            return
        if _as_bytes(first_line).startswith(ENVELOPE_PREAMBLE.encode("ascii")):
            verifier = check_keyring(keyring)
            envelope = _as_bytes(first_line) + b"".join(
                _as_bytes(line) for line in lines
            )
            plaintext, self._signer = verifier.verify(envelope)
            self._log_signer()
            self._lines = _open_lines(plaintext)
        else:
            self._lines = _chain_first(first_line, lines)

    @property
    def signer(self) -> Optional[SignerIdentity]:
        """The identity behind the signature of the input (None if unsigned or unverified)"""
        return self._signer

    def _log_signer(self) -> None:
        signer = self._signer
        if signer is None:
            _debug("Reading signed input without signature verification")
        else:
            _info(
                f"Good signature from {signer.user_id or signer.key_id}"
                f" (fingerprint: {signer.fingerprint})"
            )

    def _next_line(self) -> Optional[str]:
        raw_line = next(self._lines, None)
        if raw_line is None:
            return None
        self._line_number += 1
        if isinstance(raw_line, bytes):
            try:
                raw_line = raw_line.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedLineError(
                    f"Line {self._line_number} is not valid UTF-8: {e}",
                    self._line_number,
                ) from e
        return raw_line.rstrip("\r\n")

    def next_stanza(self) -> Optional[Stanza]:
        """Read the next stanza

        :return: The next stanza or None when the input has been exhausted
        """
        stanza = Stanza()
        last_key: Optional[str] = None
        while True:
            line = self._next_line()
            if line is None:
                break

            if line.strip() == "":
                if stanza:
                    break
                continue

            if line.startswith("#"):
                continue

            if line[0] in (" ", "\t"):
                if last_key is None:
                    raise MalformedLineError(
                        f"Line {self._line_number} is a continuation line without a field to continue",
                        self._line_number,
                    )
                content = line[1:].rstrip()
                if content == ".":
                    content = ""
                value = stanza[last_key]
                if value == "":
                    stanza[last_key] = content + "\n"
                else:
                    if not value.endswith("\n"):
                        value += "\n"
                    stanza[last_key] = value + content + "\n"
                continue

            key, sep, value = line.partition(":")
            if not sep:
                raise MalformedLineError(
                    f'Could not parse line {self._line_number}: "{line}" (expected "Key: value")',
                    self._line_number,
                )
            last_key = key.strip()
            if last_key in stanza:
                _debug(
                    f'Field "{last_key}" is repeated on line {self._line_number}; the last value wins'
                )
            stanza[last_key] = value.strip()

        if not stanza:
            return None
        self._stanza_count += 1
        return stanza

    def all(self) -> List[Stanza]:
        """Read all remaining stanzas"""
        stanzas = list(self)
        _debug(f"Read {self._stanza_count} stanza(s) from {self._line_number} line(s)")
        return stanzas

    def __iter__(self) -> Iterator[Stanza]:
        while True:
            stanza = self.next_stanza()
            if stanza is None:
                return
            yield stanza


def _chain_first(
    first: Union[str, bytes],
    rest: Iterator[Union[str, bytes]],
) -> Iterator[Union[str, bytes]]:
    yield first
    yield from rest

