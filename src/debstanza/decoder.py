from typing import (
    Iterator,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
)

from debstanza.exceptions import DecodeExhaustedError
from debstanza.field_codec import decode_stanza, schema_of
from debstanza.signing import SKIP_VERIFICATION, Keyring, SignerIdentity
from debstanza.stanza import Stanza
from debstanza.stanza_reader import StanzaReader, StanzaSource

R = TypeVar("R")


def _check_target(record_type: type) -> None:
    if record_type is not Stanza:
        schema_of(record_type)


class Decoder:
    """Decodes stanzas from a stream into records

    The target type of each call is either a class registered with
    `deb822_record` or `Stanza` for the raw stanzas.
    """

    __slots__ = ("_reader",)

    def __init__(
        self,
        stream: StanzaSource,
        keyring: Optional[Keyring] = None,
        *,
        detached_signature: Optional[bytes] = None,
    ) -> None:
        self._reader = StanzaReader(
            stream, keyring, detached_signature=detached_signature
        )

    @property
    def signer(self) -> Optional[SignerIdentity]:
        return self._reader.signer

    def decode(self, record_type: Type[R]) -> R:
        """Decode the next stanza

        :raises DecodeExhaustedError: If there are no more stanzas
        """
        _check_target(record_type)
        stanza = self._reader.next_stanza()
        if stanza is None:
            raise DecodeExhaustedError(
                f"Cannot decode a {record_type.__name__}: there are no more stanzas in the input"
            )
        return decode_stanza(stanza, record_type)

    def iter_decode(self, record_type: Type[R]) -> Iterator[R]:
        _check_target(record_type)
        for stanza in self._reader:
            yield decode_stanza(stanza, record_type)

    def decode_all(self, record_type: Type[R]) -> List[R]:
        """Decode all remaining stanzas"""
        return list(self.iter_decode(record_type))


def loads(
    data: StanzaSource,
    record_type: Type[R],
    *,
    many: bool = False,
    keyring: Optional[Keyring] = SKIP_VERIFICATION,
) -> Union[R, List[R]]:
    """Decode a complete document in one go

    Signed documents are unwrapped without verification unless a keyring is
    given.

    :param data: The document
    :param record_type: The record type (or `Stanza`)
    :param many: If True, decode all stanzas into a list.  Otherwise, decode
      exactly the first stanza.
    :param keyring: The keyring used to verify signed documents
    """
    decoder = Decoder(data, keyring)
    if many:
        return decoder.decode_all(record_type)
    return decoder.decode(record_type)
