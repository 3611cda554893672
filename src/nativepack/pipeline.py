"""Pipeline orchestrator — checkout, build, stage and package in sequence."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from nativepack.config import NativepackConfig
from nativepack.planner.plan import BuildPlan
from nativepack.publisher.builder import AutotoolsBuilder
from nativepack.publisher.fpm import FpmPackager, existing_artifacts
from nativepack.publisher.staging import StagingTree
from nativepack.source.checkout import GitCheckout

console = Console()
logger = logging.getLogger("nativepack.pipeline")


@dataclass
class PipelineResult:
    name: str
    version: str
    packages: list[Path] = field(default_factory=list)
    runtime_packages: list[Path] = field(default_factory=list)


class Pipeline:
    """End-to-end build-and-package pipeline for one BuildPlan.

    Stages run strictly in order and nothing is retried: the first external
    tool that fails raises ExternalToolFailure and the run stops there. An
    interrupted run can simply be repeated; the checkout is reused.
    """

    def __init__(
        self,
        config: NativepackConfig,
        plan: BuildPlan,
        checkout: GitCheckout | None = None,
        packager: FpmPackager | None = None,
    ) -> None:
        self.config = config
        self.plan = plan
        self.checkout = checkout or GitCheckout(
            config.checkout_dir(plan.name),
            git_binary=config.git_binary,
            timeout=config.command_timeout,
        )
        self.builder = AutotoolsBuilder(
            self.checkout.dest,
            prefix=config.prefix,
            timeout=config.command_timeout,
        )
        self.staging = StagingTree(config.staging_dir, config.scripts_dir)
        self.packager = packager or FpmPackager(
            fpm_binary=config.fpm_binary,
            maintainer=config.maintainer,
            iteration=config.iteration,
            timeout=config.command_timeout,
        )

    def close(self) -> None:
        self.checkout.close()

    def clean(self) -> None:
        """Remove the staging tree, scripts and packages of a previous run."""
        for path in (self.config.staging_dir, self.config.scripts_dir):
            if path.exists():
                shutil.rmtree(path)
        for artifact in existing_artifacts(self.plan, self.config.output_dir):
            logger.info(f"Removing previous artifact {artifact}")
            artifact.unlink()
        self.builder.discard_runtime_packages(self.config.output_dir)

    def run(self) -> PipelineResult:
        plan = self.plan
        result = PipelineResult(name=plan.name, version=plan.version)
        self.config.ensure_dirs()

        # 1. Clean
        console.print("[dim]Cleaning previous artifacts...[/]")
        self.clean()

        # 2. Checkout
        console.print(f"[dim]Checking out {plan.source}...[/]")
        source_dir = self.checkout.sync(plan.source)
        if plan.overrides.patch:
            patch_file = self.checkout.fetch_patch(
                plan.overrides.patch, self.config.work_dir
            )
            self.checkout.apply_patch(patch_file)

        # 3. Build
        flags = " ".join(sorted(plan.configure_flags)) or "(none)"
        console.print(f"[dim]Building {plan.name} {plan.version} (flags: {flags})...[/]")
        self.builder.build(plan)
        self.builder.install(plan, self.config.staging_dir)

        # 4. Stage
        console.print(f"[dim]Staging {plan.init_integration} integration...[/]")
        self.staging.assemble(plan, source_dir)
        scripts = self.staging.write_scripts(plan)

        # 5. Package
        console.print(f"[dim]Packaging as {plan.packaging_backend}...[/]")
        result.packages = self.packager.package(
            plan, self.config.staging_dir, self.config.output_dir, scripts,
        )

        # 6. Language-runtime packages
        result.runtime_packages = self.builder.collect_runtime_packages(
            self.config.output_dir
        )

        for path in [*result.packages, *result.runtime_packages]:
            console.print(f"  [green]{path.name}[/]")
        return result
