from typing import (
    Dict,
    IO,
    Iterable,
    Iterator,
    List,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)


class Stanza(MutableMapping[str, str]):
    """An ordered block of deb822 `Key: value` fields

    Keys are case-sensitive and unique.  Setting an existing key replaces the
    value in place (the key keeps its position).
    """

    __slots__ = ("_values", "_order")

    def __init__(
        self,
        fields: Optional[Union[Iterable[Tuple[str, str]], "Stanza", Dict[str, str]]] = None,
    ) -> None:
        self._values: Dict[str, str] = {}
        self._order: List[str] = []
        if fields is not None:
            items = fields.items() if hasattr(fields, "items") else fields
            for k, v in items:
                self[k] = v

    @property
    def order(self) -> List[str]:
        return list(self._order)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        if key not in self._values:
            self._order.append(key)
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]
        self._order.remove(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stanza):
            return NotImplemented
        return self._order == other._order and self._values == other._values

    def __repr__(self) -> str:
        fields = ", ".join(f"({k!r}, {self._values[k]!r})" for k in self._order)
        return f"Stanza([{fields}])"

    def dump(self) -> str:
        return "".join(_format_field(k, self._values[k]) for k in self._order)

    def write_to(self, fd: IO[str]) -> None:
        for key in self._order:
            fd.write(_format_field(key, self._values[key]))


def _format_field(key: str, value: str) -> str:
    lines = value.rstrip("\n ").split("\n")
    first_line = lines[0]
    parts = [f"{key}: {first_line}\n" if first_line else f"{key}:\n"]
    for line in lines[1:]:
        if line.strip() == "":
            parts.append(" .\n")
        else:
            parts.append(f" {line}\n")
    return "".join(parts)
