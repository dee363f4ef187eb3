"""Record types for the most common deb822 documents

`Package` covers the stanzas of `Packages` indices and the dpkg status
file.  `Release` covers `Release`/`InRelease` files of an archive.
"""

import dataclasses
import datetime
from typing import Dict, List, Optional

from debstanza.architecture import Architecture
from debstanza.dependency import Dependency, Source
from debstanza.dpkg_version import Version, compare_versions
from debstanza.field_codec import (
    ARCHITECTURE,
    BOOLEAN,
    DEPENDENCY,
    FILE_HASH,
    SOURCE,
    STRING,
    TIMESTAMP,
    UNSIGNED_INTEGER,
    VERSION,
    CommaDelimited,
    FileHash,
    NewlineDelimited,
    SpaceDelimited,
    deb822_field,
    deb822_record,
)


def _cmp_str(a: str, b: str) -> int:
    return (a > b) - (a < b)


@deb822_record
@dataclasses.dataclass(slots=True)
class Package:
    name: str = deb822_field(STRING, name="Package")
    source: Optional[Source] = deb822_field(SOURCE, name="Source")
    version: Optional[Version] = deb822_field(VERSION, name="Version")
    installed_size: Optional[int] = deb822_field(
        UNSIGNED_INTEGER, name="Installed-Size", optional=True
    )
    maintainer: str = deb822_field(STRING, name="Maintainer")
    architecture: Optional[Architecture] = deb822_field(
        ARCHITECTURE, name="Architecture"
    )
    # "same", "foreign", "allowed" or "no"
    multi_arch: str = deb822_field(STRING, name="Multi-Arch")
    replaces: Dependency = deb822_field(DEPENDENCY, name="Replaces")
    breaks: Dependency = deb822_field(DEPENDENCY, name="Breaks")
    provides: Dependency = deb822_field(DEPENDENCY, name="Provides")
    conflicts: Dependency = deb822_field(DEPENDENCY, name="Conflicts")
    enhances: Dependency = deb822_field(DEPENDENCY, name="Enhances")
    depends: Dependency = deb822_field(DEPENDENCY, name="Depends")
    recommends: Dependency = deb822_field(DEPENDENCY, name="Recommends")
    suggests: Dependency = deb822_field(DEPENDENCY, name="Suggests")
    pre_depends: Dependency = deb822_field(DEPENDENCY, name="Pre-Depends")
    description: str = deb822_field(STRING, name="Description")
    homepage: str = deb822_field(STRING, name="Homepage")
    tag: List[str] = deb822_field(CommaDelimited(STRING), name="Tag")
    section: str = deb822_field(STRING, name="Section")
    priority: str = deb822_field(STRING, name="Priority")
    essential: Optional[bool] = deb822_field(BOOLEAN, name="Essential", optional=True)
    important: Optional[bool] = deb822_field(BOOLEAN, name="Important", optional=True)
    protected: Optional[bool] = deb822_field(BOOLEAN, name="Protected", optional=True)
    filename: str = deb822_field(STRING, name="Filename")
    size: Optional[int] = deb822_field(UNSIGNED_INTEGER, name="Size", optional=True)
    sha256: str = deb822_field(STRING, name="SHA256")
    description_md5: str = deb822_field(STRING, name="Description-md5")
    md5sum: str = deb822_field(STRING, name="MD5sum")

    # Fields only used by the dpkg status file
    status: List[str] = deb822_field(SpaceDelimited(STRING), name="Status")
    config_version: Optional[Version] = deb822_field(
        VERSION, name="Config-Version", optional=True
    )
    conffiles: List[str] = deb822_field(NewlineDelimited(STRING), name="Conffiles")

    @property
    def id(self) -> str:
        """`<name>_<version>_<architecture>`, e.g. `0ad_0.0.26-3_amd64`"""
        version = str(self.version) if self.version is not None else ""
        arch = str(self.architecture) if self.architecture is not None else ""
        return f"{self.name}_{version}_{arch}"

    def compare(self, other: "Package") -> int:
        """Order packages by name, then version and finally architecture

        Architectures that match each other (see `Architecture.is_`) compare
        equal.
        """
        rc = _cmp_str(self.name, other.name)
        if rc:
            return rc
        rc = compare_versions(
            self.version if self.version is not None else Version(),
            other.version if other.version is not None else Version(),
        )
        if rc:
            return rc
        a = self.architecture
        b = other.architecture
        if a is not None and b is not None and (a.is_(b) or b.is_(a)):
            return 0
        return _cmp_str(str(a) if a else "", str(b) if b else "")


def _hash_map(entries: List[FileHash]) -> Dict[str, bytes]:
    return {e.filename: bytes.fromhex(e.hash) for e in entries}


@deb822_record
@dataclasses.dataclass(slots=True)
class Release:
    origin: str = deb822_field(STRING, name="Origin")
    label: str = deb822_field(STRING, name="Label")
    suite: str = deb822_field(STRING, name="Suite")
    version: str = deb822_field(STRING, name="Version")
    codename: str = deb822_field(STRING, name="Codename")
    changelogs: str = deb822_field(STRING, name="Changelogs")
    date: Optional[datetime.datetime] = deb822_field(TIMESTAMP, name="Date")
    valid_until: Optional[datetime.datetime] = deb822_field(
        TIMESTAMP, name="Valid-Until", optional=True
    )
    acquire_by_hash: Optional[bool] = deb822_field(
        BOOLEAN, name="Acquire-By-Hash", optional=True
    )
    no_support_for_architecture_all: str = deb822_field(
        STRING, name="No-Support-for-Architecture-all"
    )
    architectures: List[Architecture] = deb822_field(
        SpaceDelimited(ARCHITECTURE), name="Architectures"
    )
    components: List[str] = deb822_field(SpaceDelimited(STRING), name="Components")
    description: str = deb822_field(STRING, name="Description")
    md5sum: List[FileHash] = deb822_field(NewlineDelimited(FILE_HASH), name="MD5Sum")
    sha1: List[FileHash] = deb822_field(NewlineDelimited(FILE_HASH), name="SHA1")
    sha256: List[FileHash] = deb822_field(NewlineDelimited(FILE_HASH), name="SHA256")
    # OpenPGP fingerprints of the keys allowed to sign the next Release file
    signed_by: Optional[List[str]] = deb822_field(
        CommaDelimited(STRING), name="Signed-By", optional=True
    )

    def md5_sums(self) -> Dict[str, bytes]:
        return _hash_map(self.md5sum)

    def sha1_sums(self) -> Dict[str, bytes]:
        return _hash_map(self.sha1)

    def sha256_sums(self) -> Dict[str, bytes]:
        """Map each listed file name to its (binary) SHA-256 digest

        :raises ValueError: If a listed hash is not valid hex
        """
        return _hash_map(self.sha256)
