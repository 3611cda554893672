"""Shared test fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from nativepack.config import NativepackConfig
from nativepack.host.probe import Platform
from nativepack.planner.plan import BuildOverrides, BuildPlan, plan
from nativepack.planner.rules import StartWith
from nativepack.source.locator import SourceRef

SOURCE = SourceRef("https://github.com/apache/mesos.git", "0.21.0")


def _installed_only(*packages: str) -> Callable[[str], bool]:
    """Fake host package query that knows exactly *packages*."""
    present = set(packages)
    return lambda name: name in present


ALL_TLS = _installed_only(
    "libcurl4-nss-dev", "libcurl4-openssl-dev", "libcurl4-gnutls-dev",
    "libcurl-devel", "libcurl-openssl-devel", "libcurl-gnutls-devel",
)


@pytest.fixture
def installed_only() -> Callable[..., Callable[[str], bool]]:
    return _installed_only


@pytest.fixture
def all_tls() -> Callable[[str], bool]:
    """Host query that has every TLS dev-package installed."""
    return ALL_TLS


@pytest.fixture
def plan_for(all_tls) -> Callable[..., BuildPlan]:
    """Plan "mesos" for a version and platform identifier."""

    def factory(
        version: str,
        platform: str,
        overrides: BuildOverrides = BuildOverrides(),
        installed: Callable[[str], bool] | None = None,
    ) -> BuildPlan:
        return plan(
            "mesos",
            version,
            SOURCE,
            Platform.parse(platform),
            overrides,
            all_tls if installed is None else installed,
        )

    return factory


@pytest.fixture
def config(tmp_path: Path) -> NativepackConfig:
    cfg = NativepackConfig(base_dir=tmp_path / "base", output_dir=tmp_path / "out")
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def make_plan() -> Callable[..., BuildPlan]:
    """Plan factory with sensible defaults for publisher tests."""

    def factory(
        version: str = "0.21.0",
        platform: str = "ubuntu/14.04",
        start_with: StartWith = StartWith.SYSTEM,
        **overrides: object,
    ) -> BuildPlan:
        return plan(
            "mesos",
            version,
            SOURCE,
            Platform.parse(platform),
            BuildOverrides(start_with=start_with, **overrides),  # type: ignore[arg-type]
            ALL_TLS,
        )

    return factory


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by CLI runs so they don't outlive the test."""
    yield
    logger = logging.getLogger("nativepack")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
