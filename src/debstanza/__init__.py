from .version import __version__
from .architecture import Architecture, parse_architecture
from .decoder import Decoder, loads
from .dependency import Dependency, Source, parse_dependency, parse_source
from .dpkg_version import Version, compare_versions, parse_version
from .encoder import Encoder, dumps
from .exceptions import (
    Deb822Error,
    DecodeExhaustedError,
    FieldConversionError,
    GrammarError,
    MalformedLineError,
    ShapeMismatchError,
    SignatureError,
)
from .signing import (
    SKIP_VERIFICATION,
    GpgSigningKey,
    GpgvKeyring,
    Keyring,
    SignerIdentity,
    SigningKey,
)
from .stanza import Stanza
from .stanza_reader import StanzaReader

__all__ = [
    "__version__",
    "Architecture",
    "Decoder",
    "Deb822Error",
    "DecodeExhaustedError",
    "Dependency",
    "Encoder",
    "FieldConversionError",
    "GpgSigningKey",
    "GpgvKeyring",
    "GrammarError",
    "Keyring",
    "MalformedLineError",
    "SKIP_VERIFICATION",
    "ShapeMismatchError",
    "SignatureError",
    "SignerIdentity",
    "SigningKey",
    "Source",
    "Stanza",
    "StanzaReader",
    "Version",
    "compare_versions",
    "dumps",
    "loads",
    "parse_architecture",
    "parse_dependency",
    "parse_source",
    "parse_version",
]
