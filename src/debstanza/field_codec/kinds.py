import dataclasses
import datetime
import email.utils
import re
from typing import (
    Any,
    Callable,
    Generic,
    List,
    Optional,
    TypeVar,
)

from debstanza.architecture import Architecture, parse_architecture
from debstanza.dependency import Dependency, Source, parse_dependency, parse_source
from debstanza.dpkg_version import Version, parse_version

T = TypeVar("T")

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")
_UNSIGNED_INTEGER_RE = re.compile(r"^[+]?[0-9]+$")

_TRUE_VALUES = frozenset(["yes", "1", "t", "T", "TRUE", "true", "True"])
_FALSE_VALUES = frozenset(["no", "0", "f", "F", "FALSE", "false", "False"])


class FieldKind(Generic[T]):
    """Converts between the text of a stanza field and a typed value

    :param description: Human readable name of the type (used in error messages)
    :param parser: Converts the field text to the value.  Raises ValueError
      (or a subclass) on invalid input.
    :param formatter: Converts the value back to field text
    :param empty: Produces the value for a non-optional field that is absent
      from the stanza
    """

    __slots__ = ("_description", "_parser", "_formatter", "_empty")

    def __init__(
        self,
        description: str,
        parser: Callable[[str], T],
        *,
        formatter: Callable[[T], str] = str,
        empty: Callable[[], T],
    ) -> None:
        self._description = description
        self._parser = parser
        self._formatter = formatter
        self._empty = empty

    def describe_type(self) -> str:
        return self._description

    def parse(self, text: str) -> T:
        return self._parser(text)

    def format(self, value: T) -> str:
        return self._formatter(value)

    def empty(self) -> T:
        return self._empty()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._description}>"


def _parse_boolean(text: str) -> bool:
    value = text.strip()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f'"{value}" is not a boolean (expected "yes" or "no")')


def _format_boolean(value: bool) -> str:
    if not isinstance(value, bool):
        raise TypeError(f"Expected a bool, got {type(value).__name__}")
    return "yes" if value else "no"


def _parse_integer(text: str) -> int:
    value = text.strip()
    if not _INTEGER_RE.match(value):
        raise ValueError(f'"{value}" is not an integer')
    return int(value)


def _parse_unsigned_integer(text: str) -> int:
    value = text.strip()
    if value.startswith("-") and _INTEGER_RE.match(value):
        raise ValueError(f'"{value}" is negative, but the field must be non-negative')
    if not _UNSIGNED_INTEGER_RE.match(value):
        raise ValueError(f'"{value}" is not a non-negative integer')
    return int(value)


def _format_integer(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an int, got {type(value).__name__}")
    return str(value)


def _format_unsigned_integer(value: int) -> str:
    text = _format_integer(value)
    if value < 0:
        raise ValueError(f"{value} is negative, but the field must be non-negative")
    return text


def _parse_timestamp(text: str) -> datetime.datetime:
    value = text.strip()
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f'"{value}" is not an RFC 2822 date') from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _format_timestamp(value: datetime.datetime) -> str:
    if not isinstance(value, datetime.datetime):
        raise TypeError(f"Expected a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    text = email.utils.format_datetime(value)
    if value.utcoffset() == datetime.timedelta(0):
        # Release files use the zone name rather than "+0000"
        text = text[: -len("+0000")] + "UTC"
    return text


@dataclasses.dataclass(slots=True, frozen=True)
class FileHash:
    """One entry of a checksum list in a Release file (`<hash> <size> <filename>`)"""

    hash: str
    size: int
    filename: str

    @classmethod
    def parse(cls, text: str) -> "FileHash":
        parts = text.split()
        if len(parts) != 3:
            raise ValueError(
                f'"{text.strip()}" is not a file hash entry (expected "<hash> <size> <filename>")'
            )
        digest, size, filename = parts
        return cls(digest, _parse_unsigned_integer(size), filename)

    def __str__(self) -> str:
        return f"{self.hash} {self.size} {self.filename}"


STRING: FieldKind[str] = FieldKind("string", lambda text: text, empty=str)
BOOLEAN: FieldKind[bool] = FieldKind(
    "boolean",
    _parse_boolean,
    formatter=_format_boolean,
    empty=lambda: False,
)
INTEGER: FieldKind[int] = FieldKind(
    "integer",
    _parse_integer,
    formatter=_format_integer,
    empty=int,
)
UNSIGNED_INTEGER: FieldKind[int] = FieldKind(
    "non-negative integer",
    _parse_unsigned_integer,
    formatter=_format_unsigned_integer,
    empty=int,
)
VERSION: FieldKind[Optional[Version]] = FieldKind(
    "version",
    parse_version,
    empty=lambda: None,
)
ARCHITECTURE: FieldKind[Optional[Architecture]] = FieldKind(
    "architecture",
    lambda text: parse_architecture(text.strip()),
    empty=lambda: None,
)
SOURCE: FieldKind[Optional[Source]] = FieldKind(
    "source package reference",
    parse_source,
    empty=lambda: None,
)
DEPENDENCY: FieldKind[Dependency] = FieldKind(
    "dependency relations",
    parse_dependency,
    empty=Dependency,
)
TIMESTAMP: FieldKind[Optional[datetime.datetime]] = FieldKind(
    "RFC 2822 date",
    _parse_timestamp,
    formatter=_format_timestamp,
    empty=lambda: None,
)
FILE_HASH: FieldKind[Optional[FileHash]] = FieldKind(
    "file hash",
    FileHash.parse,
    empty=lambda: None,
)


class _DelimitedList(FieldKind[List[Any]]):
    __slots__ = ("element_kind",)

    def __init__(self, element_kind: FieldKind[Any], description: str) -> None:
        super().__init__(
            f"{description} list of {element_kind.describe_type()}",
            self._parse_list,
            formatter=self._format_list,
            empty=list,
        )
        self.element_kind = element_kind

    def _split(self, text: str) -> List[str]:
        raise NotImplementedError

    def _join(self, parts: List[str]) -> str:
        raise NotImplementedError

    def _parse_list(self, text: str) -> List[Any]:
        values = []
        for item in self._split(text):
            item = item.strip()
            if not item:
                continue
            try:
                values.append(self.element_kind.parse(item))
            except ValueError as e:
                raise ValueError(f'Invalid entry "{item}": {e}') from e
        return values

    def _format_list(self, values: List[Any]) -> str:
        if isinstance(values, (str, bytes)):
            raise TypeError(f"Expected a list, got {type(values).__name__}")
        return self._join([self.element_kind.format(v) for v in values])


class CommaDelimited(_DelimitedList):
    """A list written as `a, b, c`"""

    __slots__ = ()

    def __init__(self, element_kind: FieldKind[Any]) -> None:
        super().__init__(element_kind, "comma separated")

    def _split(self, text: str) -> List[str]:
        return text.split(",")

    def _join(self, parts: List[str]) -> str:
        return ", ".join(parts)


class SpaceDelimited(_DelimitedList):
    """A list written as `a b c`"""

    __slots__ = ()

    def __init__(self, element_kind: FieldKind[Any]) -> None:
        super().__init__(element_kind, "space separated")

    def _split(self, text: str) -> List[str]:
        return text.split()

    def _join(self, parts: List[str]) -> str:
        return " ".join(parts)


class NewlineDelimited(_DelimitedList):
    """A list with one entry per continuation line

    The formatted text starts with a line break, so the field line itself is
    empty (`Key:`) and every entry ends up on its own line.
    """

    __slots__ = ()

    def __init__(self, element_kind: FieldKind[Any]) -> None:
        super().__init__(element_kind, "newline separated")

    def _split(self, text: str) -> List[str]:
        return text.split("\n")

    def _join(self, parts: List[str]) -> str:
        return "\n" + "\n".join(parts)
