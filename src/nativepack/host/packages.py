"""Query the host package manager for installed packages."""

from __future__ import annotations

import logging
import shutil
import subprocess

from nativepack.errors import ExternalToolFailure, MissingRequiredDependency
from nativepack.planner.rules import PackagingBackend

logger = logging.getLogger("nativepack.host")

_INSTALLED_STATUS = "install ok installed"

QUERY_TOOLS = {
    PackagingBackend.DEB: "dpkg-query",
    PackagingBackend.RPM: "rpm",
}


class HostPackages:
    """Answers "is this package installed?" for one packaging backend.

    An answer is only ever True or False when the query tool says so
    explicitly; any other outcome raises, so a broken query can never be
    mistaken for an installed dependency.
    """

    def __init__(self, backend: PackagingBackend) -> None:
        self.backend = backend
        self._tool = QUERY_TOOLS.get(backend)

    def __call__(self, package: str) -> bool:
        return self.is_installed(package)

    def _command(self, package: str) -> list[str]:
        if self.backend is PackagingBackend.DEB:
            return [self._tool, "-W", "-f=${Status}", package]
        return [self._tool, "-q", package]

    def is_installed(self, package: str) -> bool:
        if self._tool is None:
            raise MissingRequiredDependency(
                f"Cannot check for {package}: no package database for {self.backend}"
            )
        if shutil.which(self._tool) is None:
            raise MissingRequiredDependency(
                f"Cannot check for {package}: {self._tool} is not available"
            )

        cmd = self._command(package)
        result = subprocess.run(cmd, capture_output=True, text=True)

        if result.returncode == 0:
            if self.backend is PackagingBackend.DEB:
                installed = result.stdout.strip().endswith(_INSTALLED_STATUS)
            else:
                installed = True
        elif result.returncode == 1:
            installed = False
        else:
            raise ExternalToolFailure(cmd, result.returncode, result.stderr)

        logger.debug(f"{package}: {'installed' if installed else 'not installed'}")
        return installed
