"""Blocking invocation of external tools."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from nativepack.errors import ExternalToolFailure

logger = logging.getLogger("nativepack.runner")


def run(
    cmd: list[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    sudo: bool = False,
    capture: bool = False,
    timeout: int | None = None,
) -> subprocess.CompletedProcess:
    """Run *cmd* to completion, raising ExternalToolFailure on non-zero exit.

    Output streams straight through to the terminal unless *capture* is set,
    in which case stdout/stderr are returned as text.
    """
    if sudo:
        cmd = ["sudo", "-E", *cmd]
    logger.info(f"$ {shlex.join(cmd)}" + (f"  (in {cwd})" if cwd else ""))

    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=env,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ExternalToolFailure(cmd, 127, str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolFailure(cmd, 124, f"timed out after {timeout}s") from e

    if result.returncode != 0:
        stderr = (result.stderr or "") if capture else ""
        logger.error(f"{cmd[0]} exited with status {result.returncode}")
        raise ExternalToolFailure(cmd, result.returncode, stderr)
    return result
