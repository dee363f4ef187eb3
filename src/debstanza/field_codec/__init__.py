"""Mapping between stanzas and statically declared record types

Records are dataclasses registered with `deb822_record`:

    @deb822_record
    @dataclasses.dataclass
    class Example:
        name: str = deb822_field(STRING, name="Package")
        depends: Dependency = deb822_field(DEPENDENCY, name="Depends")
        installed_size: Optional[int] = deb822_field(
            UNSIGNED_INTEGER, name="Installed-Size", optional=True
        )
"""

from debstanza.field_codec.declarative import (
    FieldDescription,
    RecordSchema,
    deb822_embedded,
    deb822_field,
    deb822_record,
    decode_stanza,
    encode_record,
    is_record,
    schema_of,
)
from debstanza.field_codec.kinds import (
    ARCHITECTURE,
    BOOLEAN,
    DEPENDENCY,
    FILE_HASH,
    INTEGER,
    SOURCE,
    STRING,
    TIMESTAMP,
    UNSIGNED_INTEGER,
    VERSION,
    CommaDelimited,
    FieldKind,
    FileHash,
    NewlineDelimited,
    SpaceDelimited,
)

__all__ = [
    "ARCHITECTURE",
    "BOOLEAN",
    "DEPENDENCY",
    "FILE_HASH",
    "INTEGER",
    "SOURCE",
    "STRING",
    "TIMESTAMP",
    "UNSIGNED_INTEGER",
    "VERSION",
    "CommaDelimited",
    "FieldDescription",
    "FieldKind",
    "FileHash",
    "NewlineDelimited",
    "RecordSchema",
    "SpaceDelimited",
    "deb822_embedded",
    "deb822_field",
    "deb822_record",
    "decode_stanza",
    "encode_record",
    "is_record",
    "schema_of",
]
