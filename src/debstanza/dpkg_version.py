import dataclasses
import re
from typing import Any

from debstanza.exceptions import GrammarError

_EPOCH_MAX = 2**31 - 1
_DIGITS_RE = re.compile(r"[0-9]+", re.ASCII)
_UPSTREAM_VERSION_RE = re.compile(r"[A-Za-z0-9.+~:-]*", re.ASCII)
_REVISION_RE = re.compile(r"[A-Za-z0-9.+~]*", re.ASCII)


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return "a" <= c <= "z" or "A" <= c <= "Z"


def _order(c: str) -> int:
    if _is_digit(c):
        return 0
    if _is_alpha(c):
        return ord(c)
    if c == "~":
        return -1
    return ord(c) + 256


def _fragment_compare(a: str, b: str) -> int:
    """Compare two upstream versions (or two revisions) the way dpkg does

    The strings are consumed as alternating runs of non-digits and digits.
    In non-digit runs, "~" sorts before everything (even the end of the run),
    letters sort by their code point and every other character sorts after
    all letters.  Digit runs are compared numerically.
    """
    i = 0
    j = 0
    len_a = len(a)
    len_b = len(b)
    while i < len_a or j < len_b:
        first_diff = 0
        while (i < len_a and not _is_digit(a[i])) or (
            j < len_b and not _is_digit(b[j])
        ):
            ac = _order(a[i]) if i < len_a else 0
            bc = _order(b[j]) if j < len_b else 0
            if ac != bc:
                return ac - bc
            i += 1
            j += 1

        while i < len_a and a[i] == "0":
            i += 1
        while j < len_b and b[j] == "0":
            j += 1

        while i < len_a and _is_digit(a[i]) and j < len_b and _is_digit(b[j]):
            if not first_diff:
                first_diff = ord(a[i]) - ord(b[j])
            i += 1
            j += 1

        if i < len_a and _is_digit(a[i]):
            return 1
        if j < len_b and _is_digit(b[j]):
            return -1
        if first_diff:
            return first_diff
    return 0


@dataclasses.dataclass(slots=True, frozen=True, eq=False)
class Version:
    """A dpkg version: `[epoch:]upstream_version[-debian_revision]`

    Equality (`==`) is structural; two versions that differ only in
    insignificant ways (such as "1.0" vs. "1.00") are `!=` but compare as
    equal via `compare` (and neither is `<` the other).
    """

    epoch: int = 0
    version: str = "0"
    revision: str = ""

    @classmethod
    def parse(cls, text: str) -> "Version":
        return parse_version(text)

    @property
    def is_native(self) -> bool:
        return not self.revision

    @property
    def without_epoch(self) -> str:
        if self.revision:
            return f"{self.version}-{self.revision}"
        return self.version

    def compare(self, other: "Version") -> int:
        return compare_versions(self, other)

    def __str__(self) -> str:
        if self.epoch > 0:
            return f"{self.epoch}:{self.without_epoch}"
        return self.without_epoch

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return (
            self.epoch == other.epoch
            and self.version == other.version
            and self.revision == other.revision
        )

    def __hash__(self) -> int:
        return hash((self.epoch, self.version, self.revision))

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) < 0

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) <= 0

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) > 0

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) >= 0


def compare_versions(a: Version, b: Version) -> int:
    """Compare two versions

    :return: A negative number if `a` sorts before `b`, 0 if they are equal
      and a positive number if `a` sorts after `b`.
    """
    if a.epoch != b.epoch:
        return 1 if a.epoch > b.epoch else -1
    rc = _fragment_compare(a.version, b.version)
    if rc:
        return rc
    return _fragment_compare(a.revision, b.revision)


def parse_version(text: str) -> Version:
    trimmed = text.strip()
    if not trimmed:
        raise GrammarError("version string is empty")
    if any(c.isspace() for c in trimmed):
        raise GrammarError(f'version string "{trimmed}" has embedded spaces')

    epoch = 0
    colon = trimmed.find(":")
    if colon != -1:
        epoch_str = trimmed[:colon]
        if epoch_str.startswith("-") and _DIGITS_RE.fullmatch(epoch_str[1:]):
            raise GrammarError(f'epoch in version "{trimmed}" is negative')
        if not _DIGITS_RE.fullmatch(epoch_str):
            raise GrammarError(
                f'epoch in version "{trimmed}" is not a number: "{epoch_str}"'
            )
        epoch = int(epoch_str)
        if epoch > _EPOCH_MAX:
            raise GrammarError(f'epoch in version "{trimmed}" is too big')

    upstream = trimmed[colon + 1 :]
    if not upstream:
        raise GrammarError(f'nothing after colon in version number "{trimmed}"')
    revision = ""
    hyphen = upstream.rfind("-")
    if hyphen != -1:
        revision = upstream[hyphen + 1 :]
        upstream = upstream[:hyphen]

    if not upstream or not _is_digit(upstream[0]):
        raise GrammarError(f'version number "{trimmed}" does not start with digit')
    if not _UPSTREAM_VERSION_RE.fullmatch(upstream):
        raise GrammarError(f'invalid character in version number "{trimmed}"')
    if not _REVISION_RE.fullmatch(revision):
        raise GrammarError(f'invalid character in revision number "{trimmed}"')
    return Version(epoch, upstream, revision)
