"""nativepack CLI — build native projects into Debian and RPM packages."""

from __future__ import annotations

import functools
import sys
from collections.abc import Callable
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nativepack import __version__
from nativepack.config import NativepackConfig
from nativepack.errors import NativepackError
from nativepack.host.packages import HostPackages
from nativepack.host.probe import Platform, PlatformProbe
from nativepack.logs import setup_logging
from nativepack.planner import rules
from nativepack.planner.plan import BuildOverrides, BuildPlan, plan as make_plan
from nativepack.planner.rules import StartWith
from nativepack.planner.versions import looks_like_version
from nativepack.source.locator import SourceRef, parse_locator

console = Console()
err_console = Console(stderr=True)

DEFAULT_REPO = "https://github.com/apache/{name}.git"

HELP_TEXT = """\
NATIVEPACK(1)                    User Commands                   NATIVEPACK(1)

NAME
    nativepack - build native projects into Debian and RPM packages

SYNOPSIS
    nativepack build <name> [--repo URL] [--ref REV] [--version VER]
                     [--start-with system|runit] [--patch STR]
                     [--cxx PATH] [--cc PATH] [--use-sudo]
    nativepack plan <name> [options]
    nativepack platform

DESCRIPTION
    nativepack checks out an autotools project at a chosen revision,
    compiles it with flags suited to the requested version, installs it
    into a staging tree together with a service definition for the host's
    init system, and packages the result with fpm as a .deb or .rpm.

COMMANDS
    build <name>
        Run the full pipeline: clean, checkout, build, stage, package.
        Packages and any Python eggs/wheels produced by the build are
        written to the current directory.

    plan <name>
        Resolve and print the build plan (configure flags, runtime
        dependencies, init system, package format) without building.

    platform
        Print the detected platform as family/version.

OPTIONS
    --repo URL
        Repository to clone (default: https://github.com/apache/<name>.git).
        A revision may be appended as a query: URL?ref=0.21.0 or URL?0.21.0.
        Fragments (URL#ref) are rejected unless --ref is also given.

    --ref REV
        Branch, tag or commit to check out. Overrides any ?ref= in --repo.

    --version VER
        Version to build and package. Defaults to the revision when it
        names a release (0.21.0, v0.21.0).

    --start-with system|runit
        Integrate with the platform's init system (default) or with runit.

    --patch STR
        Patch file or http(s) URL applied with 'git apply' after checkout.

    --cc PATH, --cxx PATH
        C and C++ compilers used for the build.

    --use-sudo
        Run 'make install' and fpm under sudo.

ENVIRONMENT VARIABLES
    NATIVEPACK_HOME          Work directory root (default: current directory)
    NATIVEPACK_OUTPUT_DIR    Where packages are written (default: cwd)
    NATIVEPACK_MAINTAINER    Package maintainer field
    NATIVEPACK_ITERATION     Package iteration/release (default: 1)
    NATIVEPACK_PREFIX        Install prefix (default: /usr)
    NATIVEPACK_FPM           fpm executable (default: fpm)
    NATIVEPACK_GIT           git executable (default: git)

FILES
    <name>-repo/             Reused git working copy
    work/toor/               Staging tree
    work/nativepack.log      Build log

EXAMPLES
    $ nativepack build mesos --ref 0.21.0
    $ nativepack build mesos --repo https://github.com/apache/mesos.git?prod7 \\
          --version 0.21.1 --start-with runit
    $ nativepack plan mesos --version 0.19.0 --platform centos/7

VERSION
    nativepack {version}

NATIVEPACK(1)                    User Commands                   NATIVEPACK(1)
""".format(version=__version__)


def get_config() -> NativepackConfig:
    config = NativepackConfig.from_env()
    config.ensure_dirs()
    return config


def resolve_version(version: str | None, source: SourceRef) -> str:
    """Pick the version to build: explicit, else the revision if it is one."""
    if version:
        return version
    if source.revision and looks_like_version(source.revision):
        rev = source.revision
        return rev[1:] if rev.startswith("v") else rev
    raise click.UsageError(
        "--version is required when the revision does not name a release"
    )


def fail_on_error(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print one-line diagnostics for pipeline errors and exit non-zero."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except NativepackError as e:
            err_console.print(f"[red]error:[/] {escape(str(e))}", soft_wrap=True)
            sys.exit(e.exit_code)
        except FileNotFoundError as e:
            err_console.print(f"[red]error:[/] {escape(str(e))}", soft_wrap=True)
            sys.exit(1)

    return wrapper


def plan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``build`` and ``plan``."""
    options = [
        click.argument("name"),
        click.option("--repo", default=None, help="Repository URL (?ref=REV allowed)"),
        click.option("--ref", default=None, help="Branch, tag or commit to build"),
        click.option("--version", "version", default=None, help="Version to package"),
        click.option("--start-with", type=click.Choice([s.value for s in StartWith]),
                     default=StartWith.SYSTEM.value, show_default=True,
                     help="Init integration"),
        click.option("--patch", default=None, help="Patch file or URL to apply"),
        click.option("--cxx", default=None, help="C++ compiler"),
        click.option("--cc", default=None, help="C compiler"),
        click.option("--use-sudo", is_flag=True, help="Install and package with sudo"),
        click.option("--verbose", "-V", is_flag=True, help="Log every command"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_plan(
    name: str,
    repo: str | None,
    ref: str | None,
    version: str | None,
    start_with: str,
    patch: str | None,
    cxx: str | None,
    cc: str | None,
    use_sudo: bool,
    platform: Platform | None = None,
) -> BuildPlan:
    source = parse_locator(repo or DEFAULT_REPO.format(name=name), revision=ref)
    requested = resolve_version(version, source)
    platform = platform or PlatformProbe().detect()
    overrides = BuildOverrides(
        start_with=StartWith(start_with),
        cc=cc,
        cxx=cxx,
        patch=patch,
        use_sudo=use_sudo,
    )
    installed = HostPackages(rules.packaging_backend_for(platform))
    return make_plan(name, requested, source, platform, overrides, installed)


def render_plan(plan: BuildPlan) -> Table:
    table = Table(title=f"Build plan: {plan.name} {plan.version}")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Source", str(plan.source))
    table.add_row("Platform", plan.platform.identifier)
    table.add_row("Configure flags", " ".join(sorted(plan.configure_flags)) or "—")
    table.add_row("Runtime dependencies", ", ".join(plan.runtime_dependencies))
    table.add_row("Init integration", str(plan.init_integration))
    table.add_row("Package format", str(plan.packaging_backend))
    table.add_row("Config files", ", ".join(plan.config_files))
    return table


@click.group()
@click.version_option(package_name="nativepack")
def cli() -> None:
    """nativepack - build native projects into Debian and RPM packages.

    Run 'nativepack help' for full documentation.
    """


@cli.command()
@click.argument("topic", required=False, default=None)
def help(topic: str | None) -> None:
    """Show detailed help. Optionally specify a command name for targeted help."""
    if topic is None:
        click.echo_via_pager(HELP_TEXT)
        return

    cmd = cli.get_command(None, topic)  # type: ignore[arg-type]
    if cmd is not None:
        with click.Context(cmd, info_name=f"nativepack {topic}") as sub_ctx:
            click.echo(cmd.get_help(sub_ctx))
        return

    console.print(f"[yellow]Unknown topic: '{topic}'. Run 'nativepack help' for full documentation.[/]")


@cli.command("platform")
@fail_on_error
def platform_() -> None:
    """Print the detected platform as family/version."""
    click.echo(PlatformProbe().detect().identifier)


@cli.command("plan")
@plan_options
@click.option("--platform", "platform_id", default=None,
              help="Plan for FAMILY/VERSION instead of the host")
@fail_on_error
def plan_(name: str, repo: str | None, ref: str | None, version: str | None,
          start_with: str, patch: str | None, cxx: str | None, cc: str | None,
          use_sudo: bool, verbose: bool, platform_id: str | None) -> None:
    """Resolve and print the build plan without building."""
    setup_logging(None, verbose)
    platform = Platform.parse(platform_id) if platform_id else None
    plan = build_plan(name, repo, ref, version, start_with, patch, cxx, cc,
                      use_sudo, platform=platform)
    console.print(render_plan(plan))


@cli.command()
@plan_options
@fail_on_error
def build(name: str, repo: str | None, ref: str | None, version: str | None,
          start_with: str, patch: str | None, cxx: str | None, cc: str | None,
          use_sudo: bool, verbose: bool) -> None:
    """Check out, build and package a project."""
    from nativepack.pipeline import Pipeline

    config = get_config()
    setup_logging(config.log_path, verbose)

    plan = build_plan(name, repo, ref, version, start_with, patch, cxx, cc, use_sudo)
    console.print(render_plan(plan))

    pipeline = Pipeline(config, plan)
    try:
        result = pipeline.run()
    finally:
        pipeline.close()

    console.print(
        f"\n[bold green]Built {len(result.packages)} package(s) and "
        f"{len(result.runtime_packages)} runtime package(s) for "
        f"{plan.name} {plan.version}[/]"
    )
