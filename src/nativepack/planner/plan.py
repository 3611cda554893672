"""Resolve a BuildPlan from the requested version, source and platform."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from nativepack.errors import MissingRequiredDependency, UnsupportedPlatform
from nativepack.host.probe import Platform
from nativepack.planner import rules, versions
from nativepack.planner.rules import InitIntegration, PackagingBackend, StartWith
from nativepack.source.locator import SourceRef

logger = logging.getLogger("nativepack.planner")

IsInstalled = Callable[[str], bool]


@dataclass(frozen=True)
class BuildOverrides:
    start_with: StartWith = StartWith.SYSTEM
    cc: str | None = None
    cxx: str | None = None
    patch: str | None = None
    use_sudo: bool = False


@dataclass(frozen=True)
class BuildPlan:
    name: str
    version: str
    source: SourceRef
    platform: Platform
    configure_flags: frozenset[str]
    runtime_dependencies: tuple[str, ...]
    init_integration: InitIntegration
    packaging_backend: PackagingBackend
    config_files: tuple[str, ...]
    overrides: BuildOverrides = BuildOverrides()

    @property
    def defaults_file(self) -> str:
        return f"{rules.DEFAULTS_DIR[self.packaging_backend]}/{self.name}"

    @property
    def logrotate_file(self) -> str | None:
        path = f"{rules.LOGROTATE_DIR}/{self.name}"
        return path if path in self.config_files else None


def configure_flags(requested_version: str) -> frozenset[str]:
    """Compiler feature flags for a requested version or tag."""
    compat = rules.COMPAT_FLAGS.get(requested_version.strip())
    if compat is not None:
        return frozenset({compat})
    if versions.gte(versions.release_of(requested_version), rules.OPTIMIZE_SINCE):
        return frozenset({rules.OPTIMIZE_FLAG})
    return frozenset()


def select_tls_backend(backend: PackagingBackend, installed: IsInstalled) -> str:
    """Pick the first installed HTTP/TLS dev-package in priority order."""
    candidates = rules.TLS_DEV_PACKAGES[backend]
    for package in candidates:
        if installed(package):
            logger.info(f"Using TLS backend {package}")
            return package
    raise MissingRequiredDependency(
        f"None of {', '.join(candidates)} is installed; install one of them"
    )


def runtime_dependencies(
    requested_version: str,
    backend: PackagingBackend,
    start_with: StartWith,
    installed: IsInstalled,
) -> tuple[str, ...]:
    deps = [rules.JAVA_RUNTIME[backend], rules.CURL_RUNTIME[backend]]
    if versions.gt(versions.release_of(requested_version), rules.SVN_CUTOFF):
        deps.append(rules.SVN_RUNTIME[backend])
    deps.append(select_tls_backend(backend, installed))
    if start_with is StartWith.RUNIT:
        deps.append(rules.RUNIT_RUNTIME)
    return tuple(deps)


def plan(
    name: str,
    requested_version: str,
    source: SourceRef,
    platform: Platform,
    overrides: BuildOverrides,
    installed: IsInstalled,
) -> BuildPlan:
    """Compute the BuildPlan for one run.

    *installed* answers whether a host package is present; it is only
    consulted for the TLS backend probe, in priority order.

    Raises:
        UnsupportedPlatform: No packaging backend or init system for *platform*.
        MissingRequiredDependency: No TLS backend dev-package is installed.
        MalformedVersion: *requested_version* has no numeric release.
    """
    backend = rules.packaging_backend_for(platform)
    if backend is PackagingBackend.UNSUPPORTED:
        raise UnsupportedPlatform(
            f"No packaging backend for {platform.identifier}"
        )

    if overrides.start_with is StartWith.RUNIT:
        init = InitIntegration.RUNIT
    else:
        detected = rules.init_integration_for(platform)
        if detected is None:
            raise UnsupportedPlatform(
                f"No init integration for {platform.identifier}; "
                f"try --start-with runit"
            )
        init = detected

    flags = configure_flags(requested_version)
    deps = runtime_dependencies(
        requested_version, backend, overrides.start_with, installed,
    )

    config_files = [f"{rules.DEFAULTS_DIR[backend]}/{name}"]
    if init is not InitIntegration.RUNIT:
        config_files.append(f"{rules.LOGROTATE_DIR}/{name}")

    return BuildPlan(
        name=name,
        version=requested_version,
        source=source,
        platform=platform,
        configure_flags=flags,
        runtime_dependencies=deps,
        init_integration=init,
        packaging_backend=backend,
        config_files=tuple(config_files),
        overrides=overrides,
    )
