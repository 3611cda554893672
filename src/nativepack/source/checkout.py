"""Clone, update and patch the working copy of the project being packaged."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from nativepack import runner
from nativepack.errors import ExternalToolFailure
from nativepack.source.locator import SourceRef

logger = logging.getLogger("nativepack.source")

# Survives `git clean` so interrupted builds can resume.
KEEP_ON_CLEAN = "/build/"


class GitCheckout:
    """Manages a git working copy that survives between runs.

    A rerun after an interrupted build reuses the existing directory: the
    clone is skipped, remote refs are fetched, the requested revision is
    force-checked-out and local edits (such as an earlier patch) are wiped.
    The out-of-tree ``build/`` directory is kept.
    """

    def __init__(
        self,
        dest: Path,
        git_binary: str = "git",
        http: httpx.Client | None = None,
        timeout: int | None = None,
    ) -> None:
        self.dest = dest
        self._git = git_binary
        self._http = http
        self._timeout = timeout

    def close(self) -> None:
        if self._http is not None:
            self._http.close()

    def _run_git(self, *args: str, cwd: Path | None = None) -> None:
        runner.run([self._git, *args], cwd=cwd, timeout=self._timeout)

    def sync(self, source: SourceRef) -> Path:
        """Bring the working copy to *source*'s revision. Returns its path."""
        reused = self.dest.exists()
        if reused:
            logger.info(f"Reusing working copy at {self.dest}")
            self._run_git("fetch", "--all", "--tags", cwd=self.dest)
        else:
            self.dest.parent.mkdir(parents=True, exist_ok=True)
            self._run_git("clone", source.repository_url, str(self.dest))

        if source.revision:
            self._run_git("checkout", "-f", source.revision, cwd=self.dest)
        if reused:
            self._run_git("reset", "--hard", cwd=self.dest)
            self._run_git("clean", "-fdx", "-e", KEEP_ON_CLEAN, cwd=self.dest)
        return self.dest

    def fetch_patch(self, patch: str, work_dir: Path) -> Path:
        """Resolve a patch argument to a local file.

        HTTP(S) URLs are downloaded into *work_dir*; anything else is taken
        as a path.
        """
        if not patch.startswith(("http://", "https://")):
            path = Path(patch).expanduser()
            if not path.is_file():
                raise FileNotFoundError(f"Patch not found: {patch}")
            return path.resolve()

        if self._http is None:
            self._http = httpx.Client(timeout=60.0)
        try:
            resp = self._http.get(patch, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ExternalToolFailure(["GET", patch], 1, str(e)) from e
        if resp.status_code != 200:
            raise ExternalToolFailure(
                ["GET", patch], 1, f"HTTP {resp.status_code} fetching patch"
            )
        work_dir.mkdir(parents=True, exist_ok=True)
        dest = work_dir / (patch.rstrip("/").rsplit("/", 1)[-1] or "source.patch")
        dest.write_bytes(resp.content)
        return dest

    def apply_patch(self, patch_file: Path) -> None:
        """Apply a patch to the working copy with ``git apply``."""
        logger.info(f"Applying patch {patch_file}")
        self._run_git("apply", str(patch_file), cwd=self.dest)
