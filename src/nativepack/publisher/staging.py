"""Assemble the staging tree handed to the packaging tool.

``make install`` provides the binaries; this module adds what the package
needs around them: the service definition for the chosen init system, a
defaults file, log rotation, documentation and the maintainer scripts.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from nativepack.planner.plan import BuildPlan
from nativepack.planner.rules import InitIntegration

logger = logging.getLogger("nativepack.publisher")

DOC_PATTERNS = ("README*", "LICENSE*", "NOTICE*", "CHANGELOG*")


# ── Templates ───────────────────────────────────────────────────


def generate_sysv_script(name: str, defaults_file: str) -> str:
    """Generate an LSB init script."""
    return f"""\
#!/bin/sh
### BEGIN INIT INFO
# Provides:          {name}
# Required-Start:    $network $remote_fs $syslog
# Required-Stop:     $network $remote_fs $syslog
# Default-Start:     2 3 4 5
# Default-Stop:      0 1 6
# Short-Description: {name}
### END INIT INFO

NAME={name}
DAEMON=/usr/bin/$NAME
PIDFILE=/var/run/$NAME.pid
ARGS=""

[ -r {defaults_file} ] && . {defaults_file}

. /lib/lsb/init-functions

case "$1" in
  start)
    log_daemon_msg "Starting $NAME" "$NAME"
    start-stop-daemon --start --background --make-pidfile --pidfile $PIDFILE \\
        --exec $DAEMON -- $ARGS
    log_end_msg $?
    ;;
  stop)
    log_daemon_msg "Stopping $NAME" "$NAME"
    start-stop-daemon --stop --retry 10 --pidfile $PIDFILE
    log_end_msg $?
    rm -f $PIDFILE
    ;;
  restart|force-reload)
    $0 stop
    $0 start
    ;;
  status)
    status_of_proc -p $PIDFILE $DAEMON $NAME
    ;;
  *)
    echo "Usage: $0 {{start|stop|restart|force-reload|status}}" >&2
    exit 3
    ;;
esac
"""


def generate_upstart_job(name: str, defaults_file: str) -> str:
    """Generate an upstart job definition."""
    return f"""\
description "{name}"

start on stopped rc RUNLEVEL=[2345]
respawn

script
  ARGS=""
  [ -r {defaults_file} ] && . {defaults_file}
  exec /usr/bin/{name} $ARGS
end script
"""


def generate_systemd_unit(name: str, defaults_file: str) -> str:
    """Generate a systemd service unit."""
    return f"""\
[Unit]
Description={name}
After=network.target
Wants=network.target

[Service]
EnvironmentFile=-{defaults_file}
ExecStart=/usr/bin/{name} $ARGS
Restart=always
RestartSec=20

[Install]
WantedBy=multi-user.target
"""


def generate_runit_run(name: str, defaults_file: str) -> str:
    """Generate a runit ``run`` script."""
    return f"""\
#!/bin/sh
exec 2>&1
ARGS=""
[ -r {defaults_file} ] && . {defaults_file}
exec /usr/bin/{name} $ARGS
"""


def generate_runit_log_run(name: str) -> str:
    return f"""\
#!/bin/sh
mkdir -p /var/log/{name}
exec svlogd -tt /var/log/{name}
"""


def generate_defaults(name: str) -> str:
    return f"""\
# Options passed to {name} by its service definition.
ARGS=""
"""


def generate_logrotate(name: str) -> str:
    return f"""\
/var/log/{name}/*.log {{
    weekly
    rotate 4
    compress
    delaycompress
    missingok
    notifempty
    copytruncate
}}
"""


def generate_after_install(name: str, init: InitIntegration) -> str:
    """Post-install script enabling the service for *init*."""
    if init is InitIntegration.SYSTEMV:
        body = (
            f"if command -v update-rc.d >/dev/null 2>&1; then\n"
            f"  update-rc.d {name} defaults\n"
            f"else\n"
            f"  chkconfig --add {name}\n"
            f"fi\n"
        )
    elif init is InitIntegration.UPSTART:
        body = "initctl reload-configuration || true\n"
    elif init is InitIntegration.SYSTEMD:
        body = (
            "systemctl daemon-reload || true\n"
            f"systemctl enable {name}.service || true\n"
        )
    else:
        body = (
            "mkdir -p /etc/service\n"
            f"ln -sfn /etc/sv/{name} /etc/service/{name}\n"
        )
    return f"#!/bin/sh\nset -e\n{body}"


def generate_before_remove(name: str, init: InitIntegration) -> str:
    """Pre-remove script stopping the service for *init*."""
    if init is InitIntegration.SYSTEMV:
        body = f"/etc/init.d/{name} stop || true\n"
    elif init is InitIntegration.UPSTART:
        body = f"stop {name} || true\n"
    elif init is InitIntegration.SYSTEMD:
        body = (
            f"systemctl stop {name}.service || true\n"
            f"systemctl disable {name}.service || true\n"
        )
    else:
        body = f"sv stop {name} || true\nrm -f /etc/service/{name}\n"
    return f"#!/bin/sh\nset -e\n{body}"


def service_files(plan: BuildPlan) -> dict[str, tuple[str, int]]:
    """Map staging-relative paths to (content, mode) for the init system."""
    name, defaults = plan.name, plan.defaults_file
    init = plan.init_integration
    if init is InitIntegration.SYSTEMV:
        return {f"etc/init.d/{name}": (generate_sysv_script(name, defaults), 0o755)}
    if init is InitIntegration.UPSTART:
        return {f"etc/init/{name}.conf": (generate_upstart_job(name, defaults), 0o644)}
    if init is InitIntegration.SYSTEMD:
        return {
            f"usr/lib/systemd/system/{name}.service":
                (generate_systemd_unit(name, defaults), 0o644),
        }
    return {
        f"etc/sv/{name}/run": (generate_runit_run(name, defaults), 0o755),
        f"etc/sv/{name}/log/run": (generate_runit_log_run(name), 0o755),
    }


# ── Staging ─────────────────────────────────────────────────────


@dataclass
class MaintainerScripts:
    after_install: Path
    before_remove: Path


class StagingTree:
    """Writes package-level files into the staging directory."""

    def __init__(self, staging_dir: Path, scripts_dir: Path) -> None:
        self.staging_dir = staging_dir
        self.scripts_dir = scripts_dir

    def _write(self, rel_path: str, content: str, mode: int = 0o644) -> Path:
        dest = self.staging_dir / rel_path.lstrip("/")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding="utf-8")
        dest.chmod(mode)
        return dest

    def assemble(self, plan: BuildPlan, source_dir: Path) -> list[Path]:
        """Write service, config and doc files. Returns the paths written."""
        written: list[Path] = []

        for rel_path, (content, mode) in service_files(plan).items():
            written.append(self._write(rel_path, content, mode))

        written.append(self._write(plan.defaults_file, generate_defaults(plan.name)))
        if plan.logrotate_file is not None:
            written.append(self._write(plan.logrotate_file,
                                       generate_logrotate(plan.name)))

        written.extend(self.copy_docs(plan.name, source_dir))
        logger.info(f"Staged {len(written)} file(s) for {plan.init_integration}")
        return written

    def copy_docs(self, name: str, source_dir: Path) -> list[Path]:
        doc_dir = self.staging_dir / "usr" / "share" / "doc" / name
        copied: list[Path] = []
        for pattern in DOC_PATTERNS:
            for doc in sorted(source_dir.glob(pattern)):
                if not doc.is_file():
                    continue
                doc_dir.mkdir(parents=True, exist_ok=True)
                dest = doc_dir / doc.name
                shutil.copy2(doc, dest)
                copied.append(dest)
        return copied

    def write_scripts(self, plan: BuildPlan) -> MaintainerScripts:
        self.scripts_dir.mkdir(parents=True, exist_ok=True)
        after = self.scripts_dir / "after-install.sh"
        before = self.scripts_dir / "before-remove.sh"
        after.write_text(generate_after_install(plan.name, plan.init_integration),
                         encoding="utf-8")
        before.write_text(generate_before_remove(plan.name, plan.init_integration),
                          encoding="utf-8")
        after.chmod(0o755)
        before.chmod(0o755)
        return MaintainerScripts(after_install=after, before_remove=before)
