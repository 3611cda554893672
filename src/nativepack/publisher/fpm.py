"""Produce .deb and .rpm packages from the staging tree with fpm."""

from __future__ import annotations

import logging
import platform as host_platform
from pathlib import Path

from nativepack import runner
from nativepack.planner.plan import BuildPlan
from nativepack.planner.rules import PackagingBackend
from nativepack.publisher.staging import MaintainerScripts

logger = logging.getLogger("nativepack.publisher")

# uname -m -> package architecture, per backend.
ARCHITECTURES: dict[PackagingBackend, dict[str, str]] = {
    PackagingBackend.DEB: {"x86_64": "amd64", "aarch64": "arm64", "i686": "i386"},
    PackagingBackend.RPM: {"amd64": "x86_64", "arm64": "aarch64"},
}

ARTIFACT_GLOBS = {
    PackagingBackend.DEB: "{name}_*.deb",
    PackagingBackend.RPM: "{name}-*.rpm",
}


def package_architecture(backend: PackagingBackend, machine: str | None = None) -> str:
    machine = machine or host_platform.machine()
    return ARCHITECTURES.get(backend, {}).get(machine, machine)


def package_version(version: str) -> str:
    """Make a requested version safe as a package version.

    A ``-`` separates the upstream version from the revision in both
    formats, so pre-release tags use ``~`` (sorts before the release).
    """
    version = version.strip()
    if version.startswith("v") and version[1:2].isdigit():
        version = version[1:]
    return version.replace("-", "~")


def existing_artifacts(plan: BuildPlan, output_dir: Path) -> list[Path]:
    pattern = ARTIFACT_GLOBS[plan.packaging_backend].format(name=plan.name)
    return sorted(output_dir.glob(pattern))


class FpmPackager:
    """Builds the fpm command line from a BuildPlan and runs it."""

    def __init__(
        self,
        fpm_binary: str = "fpm",
        maintainer: str = "",
        iteration: str = "1",
        timeout: int | None = None,
    ) -> None:
        self._fpm = fpm_binary
        self._maintainer = maintainer
        self._iteration = iteration
        self._timeout = timeout

    def command(
        self,
        plan: BuildPlan,
        staging_dir: Path,
        scripts: MaintainerScripts,
    ) -> list[str]:
        """fpm arguments. fpm writes the package into its working directory."""
        backend = plan.packaging_backend
        if backend is PackagingBackend.UNSUPPORTED:
            raise ValueError("Cannot package for an unsupported backend")

        cmd = [
            self._fpm,
            "-s", "dir",
            "-t", str(backend),
            "-n", plan.name,
            "-v", package_version(plan.version),
            "--iteration", self._iteration,
            "--architecture", package_architecture(backend),
            "--url", plan.source.repository_url,
            "--description", f"{plan.name} built from {plan.source}",
            "--after-install", str(scripts.after_install),
            "--before-remove", str(scripts.before_remove),
            "-C", str(staging_dir),
        ]
        if self._maintainer:
            cmd.extend(["--maintainer", self._maintainer])
        for dep in plan.runtime_dependencies:
            cmd.extend(["-d", dep])
        for config_file in plan.config_files:
            cmd.extend(["--config-files", config_file])
        cmd.append(".")
        return cmd

    def package(
        self,
        plan: BuildPlan,
        staging_dir: Path,
        output_dir: Path,
        scripts: MaintainerScripts,
    ) -> list[Path]:
        """Run fpm. Returns the package files it produced."""
        output_dir.mkdir(parents=True, exist_ok=True)
        before = set(existing_artifacts(plan, output_dir))
        runner.run(
            self.command(plan, staging_dir, scripts),
            cwd=output_dir,
            sudo=plan.overrides.use_sudo,
            timeout=self._timeout,
        )
        built = [p for p in existing_artifacts(plan, output_dir) if p not in before]
        logger.info(f"Packaged {', '.join(p.name for p in built) or 'nothing'}")
        return built
