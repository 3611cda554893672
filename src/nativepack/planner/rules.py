"""Decision tables mapping a platform and version to build choices.

Every table is checked exhaustively: a platform with no matching row
resolves to an explicit ``None``/``UNSUPPORTED`` rather than falling
through to a default.
"""

from __future__ import annotations

from enum import StrEnum

from nativepack.host.probe import OSFamily, Platform


class InitIntegration(StrEnum):
    SYSTEMV = "systemv"
    UPSTART = "upstart"
    SYSTEMD = "systemd"
    RUNIT = "runit"


class PackagingBackend(StrEnum):
    DEB = "deb"
    RPM = "rpm"
    UNSUPPORTED = "unsupported"


class StartWith(StrEnum):
    SYSTEM = "system"
    RUNIT = "runit"


# ── Version gates ───────────────────────────────────────────────

OPTIMIZE_SINCE = "0.21.0"
OPTIMIZE_FLAG = "--enable-optimize"

# Releases newer than this link against the Subversion client library.
SVN_CUTOFF = "0.20.1"

# Pre-release tags that fail to build with default flags.
COMPAT_FLAGS: dict[str, str] = {
    "0.19.0-rc1": "--disable-werror",
}

# ── Packaging backend ───────────────────────────────────────────

BACKENDS: dict[OSFamily, PackagingBackend] = {
    OSFamily.DEBIAN: PackagingBackend.DEB,
    OSFamily.UBUNTU: PackagingBackend.DEB,
    OSFamily.REDHAT: PackagingBackend.RPM,
    OSFamily.CENTOS: PackagingBackend.RPM,
    OSFamily.FEDORA: PackagingBackend.RPM,
}


def packaging_backend_for(platform: Platform) -> PackagingBackend:
    return BACKENDS.get(platform.family, PackagingBackend.UNSUPPORTED)


# ── Init integration ────────────────────────────────────────────

# (family, major version) rows win over (family, None) rows.
INIT_SYSTEMS: dict[tuple[OSFamily, str | None], InitIntegration] = {
    (OSFamily.DEBIAN, None): InitIntegration.SYSTEMV,
    (OSFamily.UBUNTU, None): InitIntegration.UPSTART,
    (OSFamily.REDHAT, "6"): InitIntegration.UPSTART,
    (OSFamily.CENTOS, "6"): InitIntegration.UPSTART,
    (OSFamily.REDHAT, "7"): InitIntegration.SYSTEMD,
    (OSFamily.CENTOS, "7"): InitIntegration.SYSTEMD,
    (OSFamily.FEDORA, None): InitIntegration.SYSTEMD,
}


def init_integration_for(platform: Platform) -> InitIntegration | None:
    exact = INIT_SYSTEMS.get((platform.family, platform.major_version))
    if exact is not None:
        return exact
    return INIT_SYSTEMS.get((platform.family, None))


# ── Runtime dependencies ────────────────────────────────────────

JAVA_RUNTIME = {
    PackagingBackend.DEB: "default-jre-headless",
    PackagingBackend.RPM: "java-1.8.0-openjdk-headless",
}

CURL_RUNTIME = {
    PackagingBackend.DEB: "libcurl3",
    PackagingBackend.RPM: "libcurl",
}

SVN_RUNTIME = {
    PackagingBackend.DEB: "libsvn1",
    PackagingBackend.RPM: "subversion",
}

RUNIT_RUNTIME = "runit"

# Priority order: NSS, then OpenSSL, then GnuTLS.
TLS_DEV_PACKAGES: dict[PackagingBackend, tuple[str, str, str]] = {
    PackagingBackend.DEB: (
        "libcurl4-nss-dev",
        "libcurl4-openssl-dev",
        "libcurl4-gnutls-dev",
    ),
    PackagingBackend.RPM: (
        "libcurl-devel",
        "libcurl-openssl-devel",
        "libcurl-gnutls-devel",
    ),
}

# ── Config files ────────────────────────────────────────────────

DEFAULTS_DIR = {
    PackagingBackend.DEB: "/etc/default",
    PackagingBackend.RPM: "/etc/sysconfig",
}

LOGROTATE_DIR = "/etc/logrotate.d"
