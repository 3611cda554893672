"""Detect the host operating system family and version.

Sources are tried in strict priority order and the first one that yields a
family and version wins:

    1. /etc/os-release          ID + VERSION_ID
    2. /etc/redhat-release      "<name> release <version> (<remark>)"
       /etc/system-release
    3. sw_vers                  Apple's desktop OS only

The result is normalized to a ``family/version`` identifier such as
``ubuntu/14.04``, ``centos/7`` or ``macosx/10.9``.
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from nativepack import runner
from nativepack.errors import UnknownPlatform

logger = logging.getLogger("nativepack.host")

LEGACY_RELEASE_FILES = ("etc/redhat-release", "etc/system-release")
MACOS_PRODUCT_NAME = "Mac OS X"

_LEGACY_PATTERN = re.compile(
    r"^(?P<name>.+?) release (?P<version>\S+)(?: \((?P<remark>[^)]*)\))?\s*$"
)


class OSFamily(StrEnum):
    DEBIAN = "debian"
    UBUNTU = "ubuntu"
    REDHAT = "redhat"
    CENTOS = "centos"
    FEDORA = "fedora"
    MACOSX = "macosx"
    UNKNOWN = "unknown"


FAMILY_ALIASES: dict[str, OSFamily] = {
    "debian": OSFamily.DEBIAN,
    "ubuntu": OSFamily.UBUNTU,
    "redhat": OSFamily.REDHAT,
    "rhel": OSFamily.REDHAT,
    "centos": OSFamily.CENTOS,
    "centos linux": OSFamily.CENTOS,
    "fedora": OSFamily.FEDORA,
    "macosx": OSFamily.MACOSX,
}

# How many leading version segments each family keeps.
_VERSION_SEGMENTS: dict[OSFamily, int] = {
    OSFamily.REDHAT: 1,
    OSFamily.CENTOS: 1,
    OSFamily.DEBIAN: 1,
    OSFamily.MACOSX: 2,
}


@dataclass(frozen=True)
class Platform:
    family: OSFamily
    version: str
    name: str

    @property
    def identifier(self) -> str:
        return f"{self.name}/{self.version}"

    @property
    def major_version(self) -> str:
        return self.version.split(".", 1)[0]

    def __str__(self) -> str:
        return self.identifier

    @classmethod
    def parse(cls, identifier: str) -> Platform:
        """Build a Platform from a ``family/version`` identifier."""
        name, sep, version = identifier.partition("/")
        if not sep or not name or not version:
            raise UnknownPlatform(f"Not a family/version identifier: {identifier!r}")
        return normalize(name, version)


def normalize(name: str, version: str) -> Platform:
    """Lower-case and trim a detected family/version pair."""
    name = name.strip().lower()
    if name == "rhel":
        name = "redhat"
    version = version.strip().lower()

    family = FAMILY_ALIASES.get(name, OSFamily.UNKNOWN)
    segments = _VERSION_SEGMENTS.get(family)
    if segments is not None:
        version = ".".join(version.split(".")[:segments])

    return Platform(family=family, version=version, name=name)


def _parse_os_release(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        fields[key.strip()] = value.strip().strip("\"'")
    return fields


class PlatformProbe:
    """Inspects a filesystem root (``/`` by default) for OS descriptors."""

    def __init__(self, root: Path = Path("/"), sw_vers: str = "sw_vers") -> None:
        self._root = root
        self._sw_vers = sw_vers

    def detect(self) -> Platform:
        """Return the host Platform, or raise UnknownPlatform."""
        for source in (self._from_os_release, self._from_legacy_release,
                       self._from_sw_vers):
            detected = source()
            if detected is not None:
                platform = normalize(*detected)
                logger.info(f"Detected platform {platform.identifier}")
                return platform
        raise UnknownPlatform(
            "Could not identify the host OS: no os-release, legacy release "
            "file or sw_vers found"
        )

    def _from_os_release(self) -> tuple[str, str] | None:
        path = self._root / "etc" / "os-release"
        if not path.is_file():
            return None
        fields = _parse_os_release(path.read_text(encoding="utf-8", errors="replace"))
        name, version = fields.get("ID"), fields.get("VERSION_ID")
        if not name or not version:
            logger.debug(f"{path} lacks ID or VERSION_ID")
            return None
        return name, version

    def _from_legacy_release(self) -> tuple[str, str] | None:
        for rel in LEGACY_RELEASE_FILES:
            path = self._root / rel
            if not path.is_file():
                continue
            first_line = path.read_text(encoding="utf-8", errors="replace").strip()
            first_line = first_line.splitlines()[0] if first_line else ""
            match = _LEGACY_PATTERN.match(first_line)
            if not match:
                logger.debug(f"{path} does not look like a release line")
                continue
            name = match.group("name")
            if name.startswith("Red Hat"):
                name = "redhat"
            return name, match.group("version")
        return None

    def _from_sw_vers(self) -> tuple[str, str] | None:
        if shutil.which(self._sw_vers) is None:
            return None
        product = self._query_sw_vers("-productName")
        if product != MACOS_PRODUCT_NAME:
            raise UnknownPlatform(
                f"sw_vers reports {product!r}, expected {MACOS_PRODUCT_NAME!r}"
            )
        return "macosx", self._query_sw_vers("-productVersion")

    def _query_sw_vers(self, flag: str) -> str:
        result = runner.run([self._sw_vers, flag], capture=True)
        return result.stdout.strip()


def detect() -> Platform:
    """Detect the platform of the running host."""
    return PlatformProbe().detect()
