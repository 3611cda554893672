"""Error taxonomy shared by every stage of the build pipeline."""

from __future__ import annotations


class NativepackError(Exception):
    """Base class for all errors that abort a run."""

    exit_code = 1


class MalformedVersion(NativepackError, ValueError):
    """Raised when a version string is not a dotted list of integers."""


class UnsupportedSyntax(NativepackError):
    """Raised when a source locator uses syntax that is refused."""


class UnknownPlatform(NativepackError):
    """Raised when the host operating system cannot be identified."""


class UnsupportedPlatform(NativepackError):
    """Raised when no packaging or init rule exists for a platform."""


class MissingRequiredDependency(NativepackError):
    """Raised when a required native library is absent from the host."""


class ExternalToolFailure(NativepackError):
    """Raised when a checkout, build or packaging subprocess fails."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str = "") -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"{cmd[0] if cmd else '<empty>'} exited with status {returncode}"
        )

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode or 1
