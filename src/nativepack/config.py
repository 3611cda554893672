"""Global configuration for nativepack."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_base_dir() -> Path:
    return Path(os.environ.get("NATIVEPACK_HOME", Path.cwd()))


@dataclass
class NativepackConfig:
    base_dir: Path = field(default_factory=_default_base_dir)
    output_dir: Path = field(default_factory=Path.cwd)

    # Package metadata
    maintainer: str = "nativepack <packager@localhost>"
    iteration: str = "1"
    prefix: str = "/usr"

    # Tools
    fpm_binary: str = "fpm"
    git_binary: str = "git"
    command_timeout: int | None = None

    @property
    def work_dir(self) -> Path:
        return self.base_dir / "work"

    @property
    def staging_dir(self) -> Path:
        return self.work_dir / "toor"

    @property
    def scripts_dir(self) -> Path:
        return self.work_dir / "scripts"

    @property
    def log_path(self) -> Path:
        return self.work_dir / "nativepack.log"

    def checkout_dir(self, name: str) -> Path:
        return self.base_dir / f"{name}-repo"

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> NativepackConfig:
        """Load config from environment variables."""
        config = cls()
        if output := os.environ.get("NATIVEPACK_OUTPUT_DIR"):
            config.output_dir = Path(output)
        if maintainer := os.environ.get("NATIVEPACK_MAINTAINER"):
            config.maintainer = maintainer
        if iteration := os.environ.get("NATIVEPACK_ITERATION"):
            config.iteration = iteration
        if prefix := os.environ.get("NATIVEPACK_PREFIX"):
            config.prefix = prefix
        if fpm := os.environ.get("NATIVEPACK_FPM"):
            config.fpm_binary = fpm
        if git := os.environ.get("NATIVEPACK_GIT"):
            config.git_binary = git
        if timeout := os.environ.get("NATIVEPACK_COMMAND_TIMEOUT"):
            config.command_timeout = int(timeout)
        return config
