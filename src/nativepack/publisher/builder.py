"""Configure, compile and install the project with its autotools build."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

import psutil

from nativepack import runner
from nativepack.planner.plan import BuildPlan

logger = logging.getLogger("nativepack.publisher")

JVM_ROOT = Path("/usr/lib/jvm")
RUNTIME_PACKAGE_PATTERNS = ("*.egg", "*.whl")


def job_count() -> int:
    """Parallel make jobs: twice the number of logical cores."""
    cores = psutil.cpu_count(logical=True) or 1
    return cores * 2


def discover_java_bin(jvm_root: Path = JVM_ROOT) -> Path | None:
    """Find a JDK ``bin`` directory (one that ships ``javac``).

    ``JAVA_HOME`` wins when set; otherwise the first JDK under *jvm_root*
    in sorted order is used.
    """
    if java_home := os.environ.get("JAVA_HOME"):
        candidate = Path(java_home) / "bin"
        if (candidate / "javac").exists():
            return candidate
    if not jvm_root.is_dir():
        return None
    for jdk in sorted(jvm_root.iterdir()):
        candidate = jdk / "bin"
        if (candidate / "javac").exists():
            return candidate
    return None


class AutotoolsBuilder:
    """Runs bootstrap/configure/make for a checked-out source tree.

    Configuration happens out of tree in ``<source>/build`` so reruns can
    reuse objects from an interrupted build.
    """

    def __init__(
        self,
        source_dir: Path,
        prefix: str = "/usr",
        timeout: int | None = None,
        jvm_root: Path = JVM_ROOT,
    ) -> None:
        self.source_dir = source_dir
        self.build_dir = source_dir / "build"
        self._prefix = prefix
        self._timeout = timeout
        self._jvm_root = jvm_root

    def _build_env(self, plan: BuildPlan) -> dict[str, str]:
        """Return environment for build subprocesses.

        Sets CC/CXX from the plan's overrides and puts a discovered JDK on
        PATH ahead of everything else.
        """
        env = os.environ.copy()
        if plan.overrides.cc:
            env["CC"] = plan.overrides.cc
        if plan.overrides.cxx:
            env["CXX"] = plan.overrides.cxx
        java_bin = discover_java_bin(self._jvm_root)
        if java_bin is not None:
            env["PATH"] = f"{java_bin}{os.pathsep}{env.get('PATH', '')}"
            env.setdefault("JAVA_HOME", str(java_bin.parent))
        return env

    def configure_command(self, plan: BuildPlan) -> list[str]:
        return ["../configure", f"--prefix={self._prefix}",
                *sorted(plan.configure_flags)]

    def build(self, plan: BuildPlan) -> Path:
        """Bootstrap if needed, configure and compile. Returns the build dir."""
        env = self._build_env(plan)

        if not (self.source_dir / "configure").exists():
            runner.run(["./bootstrap"], cwd=self.source_dir, env=env,
                       timeout=self._timeout)

        self.build_dir.mkdir(parents=True, exist_ok=True)
        runner.run(self.configure_command(plan), cwd=self.build_dir, env=env,
                   timeout=self._timeout)

        jobs = job_count()
        logger.info(f"Compiling with {jobs} parallel jobs")
        runner.run(["make", f"-j{jobs}"], cwd=self.build_dir, env=env,
                   timeout=self._timeout)
        return self.build_dir

    def install(self, plan: BuildPlan, staging_dir: Path) -> None:
        """Install the compiled tree into *staging_dir* via DESTDIR."""
        staging_dir.mkdir(parents=True, exist_ok=True)
        runner.run(
            ["make", "install", f"DESTDIR={staging_dir}"],
            cwd=self.build_dir,
            env=self._build_env(plan),
            sudo=plan.overrides.use_sudo,
            timeout=self._timeout,
        )
        if plan.overrides.use_sudo:
            # Package-level files are written into the tree afterwards.
            runner.run(
                ["chown", "-R", f"{os.getuid()}:{os.getgid()}", str(staging_dir)],
                sudo=True,
            )

    def discard_runtime_packages(self, output_dir: Path) -> None:
        """Remove eggs and wheels left by an earlier build, here and in *output_dir*."""
        if not self.build_dir.is_dir():
            return
        for pattern in RUNTIME_PACKAGE_PATTERNS:
            for artifact in sorted(self.build_dir.rglob(pattern)):
                if not artifact.is_file():
                    continue
                copied = output_dir / artifact.name
                if copied.is_file():
                    logger.info(f"Removing previous artifact {copied}")
                    copied.unlink()
                artifact.unlink()

    def collect_runtime_packages(self, output_dir: Path) -> list[Path]:
        """Copy language-runtime packages (eggs, wheels) to *output_dir*."""
        output_dir.mkdir(parents=True, exist_ok=True)
        copied: list[Path] = []
        for pattern in RUNTIME_PACKAGE_PATTERNS:
            for artifact in sorted(self.build_dir.rglob(pattern)):
                if not artifact.is_file():
                    continue
                dest = output_dir / artifact.name
                shutil.copy2(artifact, dest)
                copied.append(dest)
        return copied
