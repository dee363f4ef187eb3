import dataclasses
from typing import Optional, Sequence

from debstanza.exceptions import GrammarError

_WILDCARDS = frozenset(["any", "all"])


@dataclasses.dataclass(slots=True, frozen=True)
class Architecture:
    """A dpkg architecture tuple (`<abi>-<os>-<cpu>`)

    Each component may be one of the "any" or "all" wildcards.  Use `is_`
    for wildcard-aware matching; `==` only compares the components.
    """

    abi: str = "any"
    os: str = "any"
    cpu: str = "any"

    @classmethod
    def parse(cls, text: str) -> "Architecture":
        return parse_architecture(text)

    @property
    def is_wildcard(self) -> bool:
        if self.cpu == "all":
            return False
        return "any" in (self.abi, self.os, self.cpu)

    def is_(self, other: "Architecture") -> bool:
        """Whether the two architectures describe the same concrete architecture

        Two wildcards never match each other; we always need one concrete
        architecture to compare against.
        """
        if self.is_wildcard and other.is_wildcard:
            return False
        if self.is_wildcard:
            return other.is_(self)

        cpu_matches = self.cpu == other.cpu or (
            self.cpu != "all" and other.cpu == "any"
        )
        os_matches = self.os == other.os or "any" in (self.os, other.os)
        abi_matches = self.abi == other.abi or "any" in (self.abi, other.abi)
        return cpu_matches and os_matches and abi_matches

    def __str__(self) -> str:
        parts = []
        if self.abi not in ("any", "all", "gnu", ""):
            parts.append(self.abi)
        if self.os not in ("any", "all", "linux"):
            parts.append(self.os)
        parts.append(self.cpu)
        short_form = "-".join(parts)
        # The short form drops the implied components; fall back to a longer
        # form when dropping them would change the meaning on re-parse.
        for candidate in (
            short_form,
            f"{self.os}-{self.cpu}",
            f"{self.abi}-{self.os}-{self.cpu}",
        ):
            if _interpret(candidate.split("-")) == self:
                return candidate
        return short_form


def _interpret(flavors: Sequence[str]) -> Optional[Architecture]:
    if not all(flavors):
        return None
    if len(flavors) == 1:
        flavor = flavors[0]
        if flavor in _WILDCARDS:
            return Architecture(flavor, flavor, flavor)
        return Architecture("gnu", "linux", flavor)
    if len(flavors) == 2:
        return Architecture("any", flavors[0], flavors[1])
    if len(flavors) == 3:
        return Architecture(flavors[0], flavors[1], flavors[2])
    return None


def parse_architecture(text: str) -> Architecture:
    """Parse an architecture name

    Accepted forms are:
     * `any` / `all` (all three components take that value)
     * `amd64` (implicitly `gnu-linux-amd64`)
     * `kfreebsd-amd64` (the ABI is left as `any`)
     * `bsd-openbsd-i386`
    """
    arch = _interpret(text.split("-"))
    if arch is None:
        raise GrammarError(f'invalid architecture "{text}"')
    return arch
