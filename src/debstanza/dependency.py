"""Debian dependency relations (`Depends`, `Build-Depends`, ...)

A relationship field is a comma separated list of relations, each being a
list of alternatives ("possibilities") separated by `|`:

    foo:amd64 (>= 1.0) [linux-any] <!nocheck>, bar | baz

The printed form of a parsed relationship is canonical.  Inside a
possibility, restrictions are always written in the order: architecture
qualifier, architecture restriction, version relation and then the build
profile (stage) restrictions in their original order.
"""

import dataclasses
from typing import List, Optional

from debstanza._cursor import WHITESPACE, Cursor
from debstanza.architecture import Architecture, parse_architecture
from debstanza.dpkg_version import Version, compare_versions, parse_version
from debstanza.exceptions import GrammarError

VERSION_OPERATORS = frozenset(["<<", "<=", "=", ">=", ">>"])

_NAME_TERMINATORS = frozenset(":,|([<") | WHITESPACE
_ARCH_QUALIFIER_TERMINATORS = frozenset(":,|([<") | WHITESPACE
_ARCH_TOKEN_TERMINATORS = frozenset("]!") | WHITESPACE
_STAGE_TOKEN_TERMINATORS = frozenset(">!") | WHITESPACE
_SOURCE_NAME_TERMINATORS = frozenset("(") | WHITESPACE


@dataclasses.dataclass(slots=True)
class VersionRelation:
    """A version restriction such as `(>= 1.0)`

    The operators are defined by section 7.1 of the Debian policy: `<<`,
    `<=`, `=`, `>=` and `>>` for strictly earlier, earlier or equal, exactly
    equal, later or equal and strictly later, respectively.
    """

    operator: str
    version: Version

    def satisfied_by(self, version: Version) -> bool:
        rc = compare_versions(version, self.version)
        if self.operator == "<<":
            return rc < 0
        if self.operator == "<=":
            return rc <= 0
        if self.operator == "=":
            return rc == 0
        if self.operator == ">=":
            return rc >= 0
        if self.operator == ">>":
            return rc > 0
        raise ValueError(f'Unknown version operator "{self.operator}"')

    def __str__(self) -> str:
        return f"({self.operator} {self.version})"


@dataclasses.dataclass(slots=True)
class ArchSet:
    """An architecture restriction list such as `[amd64 i386]` or `[!hurd-any]`"""

    negated: bool = False
    architectures: List[Architecture] = dataclasses.field(default_factory=list)

    def matches(self, arch: Architecture) -> bool:
        """Whether the restriction selects the given architecture"""
        listed = any(a.is_(arch) for a in self.architectures)
        return not listed if self.negated else listed

    def __str__(self) -> str:
        if not self.architectures:
            return ""
        prefix = "!" if self.negated else ""
        return "[" + " ".join(f"{prefix}{a}" for a in self.architectures) + "]"


@dataclasses.dataclass(slots=True)
class Stage:
    name: str
    negated: bool = False

    def __str__(self) -> str:
        if self.negated:
            return f"!{self.name}"
        return self.name


@dataclasses.dataclass(slots=True)
class StageSet:
    """A build profile restriction such as `<!nocheck cross>`"""

    stages: List[Stage] = dataclasses.field(default_factory=list)

    def __str__(self) -> str:
        if not self.stages:
            return ""
        return "<" + " ".join(str(s) for s in self.stages) + ">"


@dataclasses.dataclass(slots=True)
class Possibility:
    """One alternative of a relation (`foo (>= 1.0)` in `foo (>= 1.0) | bar`)

    When `substvar` is True, `name` is the name of an unexpanded
    substitution variable (`misc:Depends` for `${misc:Depends}`) rather than a
    package name and no restrictions apply.
    """

    name: str
    arch: Optional[Architecture] = None
    architectures: Optional[ArchSet] = None
    version: Optional[VersionRelation] = None
    stage_sets: List[StageSet] = dataclasses.field(default_factory=list)
    substvar: bool = False

    def __str__(self) -> str:
        if self.substvar:
            return "${" + self.name + "}"
        parts = [self.name]
        if self.arch is not None:
            parts.append(f":{self.arch}")
        if self.architectures is not None and self.architectures.architectures:
            parts.append(f" {self.architectures}")
        if self.version is not None:
            parts.append(f" {self.version}")
        for stage_set in self.stage_sets:
            if stage_set.stages:
                parts.append(f" {stage_set}")
        return "".join(parts)


@dataclasses.dataclass(slots=True)
class Relation:
    possibilities: List[Possibility] = dataclasses.field(default_factory=list)

    def __str__(self) -> str:
        return " | ".join(str(p) for p in self.possibilities)


@dataclasses.dataclass(slots=True)
class Dependency:
    relations: List[Relation] = dataclasses.field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "Dependency":
        return parse_dependency(text)

    def __str__(self) -> str:
        return ", ".join(str(r) for r in self.relations)


@dataclasses.dataclass(slots=True)
class Source:
    """A source package back-reference such as `foo (1.0-1)`"""

    name: str
    version: Optional[Version] = None

    @classmethod
    def parse(cls, text: str) -> "Source":
        return parse_source(text)

    def __str__(self) -> str:
        if self.version is not None:
            return f"{self.name} ({self.version})"
        return self.name


def format_dependency(dependency: Dependency) -> str:
    return str(dependency)


def parse_dependency(text: str) -> Dependency:
    cursor = Cursor(text)
    relations = []
    cursor.skip_whitespace()
    while not cursor.at_end:
        if cursor.peek() == ",":
            cursor.next()
            cursor.skip_whitespace()
            continue
        relation = _parse_relation(cursor)
        # Empty relations come from stray commas (e.g. a trailing comma)
        if relation.possibilities:
            relations.append(relation)
    return Dependency(relations)


def _parse_relation(cursor: Cursor) -> Relation:
    possibilities = []
    while True:
        cursor.skip_whitespace()
        c = cursor.peek()
        if c is None or c == ",":
            break
        if c == "|":
            cursor.next()
            continue
        possibility = _parse_possibility(cursor)
        if possibility is not None:
            possibilities.append(possibility)
    return Relation(possibilities)


def _parse_possibility(cursor: Cursor) -> Optional[Possibility]:
    if cursor.peek() == "$":
        return _parse_substvar(cursor)

    possibility = Possibility(cursor.take_until(_NAME_TERMINATORS))
    if cursor.peek() == ":":
        cursor.next()
        arch_name = cursor.take_until(_ARCH_QUALIFIER_TERMINATORS)
        if not arch_name:
            cursor.error("missing architecture after the architecture qualifier")
        possibility.arch = _parse_arch(cursor, arch_name)

    _parse_restrictions(cursor, possibility)

    if not possibility.name:
        if (
            possibility.arch is not None
            or possibility.architectures is not None
            or possibility.version is not None
            or possibility.stage_sets
        ):
            cursor.error("missing package name before restrictions")
        return None
    return possibility


def _parse_substvar(cursor: Cursor) -> Possibility:
    cursor.expect("$", "substitution variable")
    cursor.expect("{", "substitution variable")
    name = cursor.take_until(frozenset("}"))
    if cursor.at_end:
        cursor.error("reached end of input before substitution variable finished")
    cursor.next()
    if not name:
        cursor.error("empty substitution variable")
    cursor.skip_whitespace()
    c = cursor.peek()
    if c is not None and c not in ",|":
        cursor.error(f'unexpected "{c}" after substitution variable')
    return Possibility(name, substvar=True)


def _parse_arch(cursor: Cursor, arch_name: str) -> Architecture:
    try:
        return parse_architecture(arch_name)
    except GrammarError as e:
        cursor.error(e.message)


def _parse_restrictions(cursor: Cursor, possibility: Possibility) -> None:
    while True:
        cursor.skip_whitespace()
        c = cursor.peek()
        if c is None or c in ",|":
            return
        if c == "(":
            if possibility.version is not None:
                cursor.error("only one version relation per possibility")
            possibility.version = _parse_version_relation(cursor)
        elif c == "[":
            if possibility.architectures is not None:
                cursor.error("only one architecture restriction per possibility")
            possibility.architectures = _parse_arch_set(cursor)
        elif c == "<":
            possibility.stage_sets.append(_parse_stage_set(cursor))
        else:
            cursor.error(f'trailing garbage in possibility: "{c}"')


def _parse_version_relation(cursor: Cursor) -> VersionRelation:
    cursor.expect("(", "version relation")
    cursor.skip_whitespace()
    leader = cursor.next()
    if leader is None:
        cursor.error("reached end of input before the operator finished")
    if leader == "=":
        operator = "="
    else:
        secondary = cursor.next()
        if secondary is None:
            cursor.error("reached end of input before the operator finished")
        operator = leader + secondary
        if operator not in VERSION_OPERATORS:
            cursor.error(f'unknown operator in version relation: "{operator}"')

    cursor.skip_whitespace()
    version_text = cursor.take_until(frozenset(")"))
    if cursor.at_end:
        cursor.error("reached end of input before the version relation finished")
    cursor.next()
    try:
        version = parse_version(version_text)
    except GrammarError as e:
        cursor.error(e.message)
    return VersionRelation(operator, version)


def _parse_arch_set(cursor: Cursor) -> ArchSet:
    cursor.expect("[", "architecture restriction")
    arch_set = ArchSet()
    while True:
        cursor.skip_whitespace()
        c = cursor.peek()
        if c is None:
            cursor.error(
                "reached end of input before the architecture restriction finished"
            )
        if c == "]":
            cursor.next()
            break
        negated = c == "!"
        if negated:
            cursor.next()
        if not arch_set.architectures:
            arch_set.negated = negated
        elif arch_set.negated != negated:
            cursor.error("cannot mix negated and non-negated architectures")
        arch_name = cursor.take_until(_ARCH_TOKEN_TERMINATORS)
        c = cursor.peek()
        if c is None:
            cursor.error(
                "reached end of input before the architecture restriction finished"
            )
        if c == "!":
            cursor.error("negation must apply to a whole architecture")
        if not arch_name:
            cursor.error("missing architecture name")
        arch_set.architectures.append(_parse_arch(cursor, arch_name))

    if not arch_set.architectures:
        cursor.error("empty architecture restriction")
    return arch_set


def _parse_stage_set(cursor: Cursor) -> StageSet:
    cursor.expect("<", "build profile restriction")
    stage_set = StageSet()
    while True:
        cursor.skip_whitespace()
        c = cursor.peek()
        if c is None:
            cursor.error(
                "reached end of input before the build profile restriction finished"
            )
        if c == ">":
            cursor.next()
            break
        negated = c == "!"
        if negated:
            cursor.next()
            if cursor.peek() == "!":
                cursor.error("double negation of a build profile is not permitted")
        name = cursor.take_until(_STAGE_TOKEN_TERMINATORS)
        c = cursor.peek()
        if c is None:
            cursor.error(
                "reached end of input before the build profile restriction finished"
            )
        if c == "!":
            cursor.error("negation must apply to a whole build profile")
        if not name:
            cursor.error("missing build profile name")
        stage_set.stages.append(Stage(name, negated))

    if not stage_set.stages:
        cursor.error("empty build profile restriction")
    return stage_set


def parse_source(text: str) -> Source:
    """Parse a `Source` field value (`name` or `name (version)`)

    Anything after the closing parenthesis is rejected.
    """
    cursor = Cursor(text)
    cursor.skip_whitespace()
    name = cursor.take_until(_SOURCE_NAME_TERMINATORS)
    if not name:
        cursor.error("missing source package name")
    cursor.skip_whitespace()
    if cursor.at_end:
        return Source(name)

    cursor.expect("(", "source version")
    version_text = cursor.take_until(frozenset(")"))
    if cursor.at_end:
        cursor.error("reached end of input before the source version finished")
    cursor.next()
    cursor.skip_whitespace()
    if not cursor.at_end:
        cursor.error("trailing content after the source version")
    try:
        version = parse_version(version_text)
    except GrammarError as e:
        cursor.error(e.message)
    return Source(name, version)
