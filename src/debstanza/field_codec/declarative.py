import dataclasses
from typing import (
    Any,
    Dict,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from debstanza.exceptions import FieldConversionError, ShapeMismatchError
from debstanza.field_codec.kinds import FieldKind
from debstanza.stanza import Stanza
from debstanza.util import assume_not_none

R = TypeVar("R")

_FIELD_METADATA_KEY = "deb822"
_SCHEMA_ATTRIBUTE = "__deb822_schema__"


@dataclasses.dataclass(slots=True, frozen=True)
class _FieldDeclaration:
    kind: Optional[FieldKind[Any]]
    name: Optional[str]
    optional: bool
    embedded_type: Optional[type] = None


@dataclasses.dataclass(slots=True, frozen=True)
class FieldDescription:
    """How one attribute of a record maps to the stanza

    Embedded sub-records have no `stanza_key` and no `kind`.  Their fields are
    described by `embedded`.
    """

    target_attribute: str
    stanza_key: Optional[str]
    kind: Optional[FieldKind[Any]]
    is_optional: bool = False
    embedded: Optional["RecordSchema"] = None


@dataclasses.dataclass(slots=True, frozen=True)
class RecordSchema:
    record_type: type
    fields: Tuple[FieldDescription, ...]

    @property
    def record_name(self) -> str:
        return self.record_type.__name__

    @property
    def keys(self) -> Tuple[str, ...]:
        """The stanza keys of the record in declaration order (embedded records are flattened)"""
        keys = []
        for field in self.fields:
            if field.embedded is not None:
                keys.extend(field.embedded.keys)
            else:
                keys.append(field.stanza_key)
        return tuple(keys)

    def decode(self, stanza: Stanza, *, owner: Optional[str] = None) -> Any:
        """Build the record from the stanza

        :param owner: The record named in error messages (defaults to this
          record; embedded records report the record they are part of)
        """
        record_name = owner if owner is not None else self.record_name
        kwargs: Dict[str, Any] = {}
        for field in self.fields:
            if field.embedded is not None:
                kwargs[field.target_attribute] = field.embedded.decode(
                    stanza, owner=record_name
                )
                continue
            kind = assume_not_none(field.kind)
            key = assume_not_none(field.stanza_key)
            raw_value = stanza.get(key)
            if raw_value is None:
                kwargs[field.target_attribute] = (
                    None if field.is_optional else kind.empty()
                )
                continue
            try:
                kwargs[field.target_attribute] = kind.parse(raw_value)
            except (ValueError, TypeError) as e:
                raise FieldConversionError(
                    f'Could not decode the field "{key}" of {record_name} as'
                    f" {kind.describe_type()}: {e}",
                    key,
                ) from e
        return self.record_type(**kwargs)

    def encode_into(
        self, record: Any, stanza: Stanza, *, owner: Optional[str] = None
    ) -> None:
        record_name = owner if owner is not None else self.record_name
        for field in self.fields:
            value = getattr(record, field.target_attribute)
            if value is None:
                continue
            if field.embedded is not None:
                field.embedded.encode_into(value, stanza, owner=record_name)
                continue
            kind = assume_not_none(field.kind)
            key = assume_not_none(field.stanza_key)
            try:
                text = kind.format(value)
            except (ValueError, TypeError) as e:
                raise FieldConversionError(
                    f'Could not encode the field "{key}" of {record_name} as'
                    f" {kind.describe_type()}: {e}",
                    key,
                ) from e
            # Optional fields are written even when empty
            if not field.is_optional and not text.strip():
                continue
            stanza[key] = text


def deb822_field(
    kind: FieldKind[Any],
    *,
    name: Optional[str] = None,
    optional: bool = False,
) -> Any:
    """Declare a record attribute stored in a stanza field

    :param kind: How to convert the field text to and from the attribute value
    :param name: The stanza key.  Defaults to the attribute name.
    :param optional: Whether the field may be absent.  Optional attributes are
      None when the field is absent and omit the field when None.
    """
    metadata = {_FIELD_METADATA_KEY: _FieldDeclaration(kind, name, optional)}
    if optional:
        return dataclasses.field(default=None, metadata=metadata)
    return dataclasses.field(default_factory=kind.empty, metadata=metadata)


def deb822_embedded(record_type: type) -> Any:
    """Declare an attribute holding a sub-record whose fields are merged into the stanza"""
    schema_of(record_type)
    metadata = {
        _FIELD_METADATA_KEY: _FieldDeclaration(
            None, None, False, embedded_type=record_type
        )
    }
    return dataclasses.field(default_factory=record_type, metadata=metadata)


def deb822_record(cls: Type[R]) -> Type[R]:
    """Register a class as a record that can be decoded from and encoded to stanzas

    The class is turned into a dataclass if it is not one already.  Every
    attribute must be declared with `deb822_field` or `deb822_embedded`, or
    have a default (in which case it is not stored in the stanza).
    """
    if not dataclasses.is_dataclass(cls):
        cls = dataclasses.dataclass(cls)

    fields = []
    seen_keys: Dict[str, str] = {}

    def _claim(key: str, attribute: str) -> None:
        existing = seen_keys.get(key)
        if existing is not None:
            raise ValueError(
                f'The stanza key "{key}" is used by both "{existing}" and "{attribute}"'
                f" of {cls.__name__}"
            )
        seen_keys[key] = attribute

    for dc_field in dataclasses.fields(cls):
        declaration = dc_field.metadata.get(_FIELD_METADATA_KEY)
        if declaration is None:
            if (
                dc_field.init
                and dc_field.default is dataclasses.MISSING
                and dc_field.default_factory is dataclasses.MISSING
            ):
                raise TypeError(
                    f'The attribute "{dc_field.name}" of {cls.__name__} is neither a deb822 field'
                    " nor has a default value"
                )
            continue
        if declaration.embedded_type is not None:
            embedded = schema_of(declaration.embedded_type)
            for key in embedded.keys:
                _claim(key, f"{dc_field.name}.{key}")
            fields.append(
                FieldDescription(dc_field.name, None, None, embedded=embedded)
            )
            continue
        key = declaration.name if declaration.name is not None else dc_field.name
        _claim(key, dc_field.name)
        fields.append(
            FieldDescription(
                dc_field.name,
                key,
                declaration.kind,
                is_optional=declaration.optional,
            )
        )

    setattr(cls, _SCHEMA_ATTRIBUTE, RecordSchema(cls, tuple(fields)))
    return cls


def is_record(obj_or_type: Any) -> bool:
    record_type = obj_or_type if isinstance(obj_or_type, type) else type(obj_or_type)
    return isinstance(record_type.__dict__.get(_SCHEMA_ATTRIBUTE), RecordSchema)


def schema_of(record_type: type) -> RecordSchema:
    schema = (
        record_type.__dict__.get(_SCHEMA_ATTRIBUTE)
        if isinstance(record_type, type)
        else None
    )
    if not isinstance(schema, RecordSchema):
        raise ShapeMismatchError(
            f"{record_type!r} is not a deb822 record (missing @deb822_record)"
        )
    return schema


def decode_stanza(stanza: Stanza, record_type: Type[R]) -> R:
    """Convert a stanza into a record (or a copy of the stanza for `Stanza`)"""
    if record_type is Stanza:
        return Stanza(stanza)  # type: ignore[return-value]
    return schema_of(record_type).decode(stanza)


def encode_record(record: Union[Stanza, Any]) -> Stanza:
    """Convert a record into a stanza (stanzas are returned as is)"""
    if isinstance(record, Stanza):
        return record
    schema = schema_of(type(record))
    stanza = Stanza()
    schema.encode_into(record, stanza)
    return stanza

