"""Tests for host package queries."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from nativepack.errors import ExternalToolFailure, MissingRequiredDependency
from nativepack.host.packages import HostPackages
from nativepack.planner.rules import PackagingBackend


def _result(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode,
                                       stdout=stdout, stderr=stderr)


@pytest.fixture
def which():
    with patch("nativepack.host.packages.shutil.which", return_value="/usr/bin/tool") as m:
        yield m


class TestDpkg:
    def test_installed(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(0, "install ok installed")) as run:
            assert HostPackages(PackagingBackend.DEB).is_installed("libcurl4-nss-dev")
        assert run.call_args.args[0] == [
            "dpkg-query", "-W", "-f=${Status}", "libcurl4-nss-dev",
        ]

    def test_removed_but_configured_is_not_installed(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(0, "deinstall ok config-files")):
            assert not HostPackages(PackagingBackend.DEB).is_installed("libsvn1")

    def test_unknown_package(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(1, stderr="no packages found matching")):
            assert not HostPackages(PackagingBackend.DEB)("libcurl4-nss-dev")

    def test_unexpected_status_raises(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(2, stderr="database locked")):
            with pytest.raises(ExternalToolFailure) as exc:
                HostPackages(PackagingBackend.DEB).is_installed("libcurl3")
        assert exc.value.returncode == 2


class TestRpm:
    def test_installed(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(0, "libcurl-devel-7.29.0-19.el7.x86_64")) as run:
            assert HostPackages(PackagingBackend.RPM).is_installed("libcurl-devel")
        assert run.call_args.args[0] == ["rpm", "-q", "libcurl-devel"]

    def test_not_installed(self, which) -> None:
        with patch("nativepack.host.packages.subprocess.run",
                   return_value=_result(1, "package libcurl-devel is not installed")):
            assert not HostPackages(PackagingBackend.RPM).is_installed("libcurl-devel")


class TestUnavailable:
    def test_missing_tool_raises(self) -> None:
        with patch("nativepack.host.packages.shutil.which", return_value=None):
            with pytest.raises(MissingRequiredDependency):
                HostPackages(PackagingBackend.DEB).is_installed("libcurl3")

    def test_unsupported_backend_raises(self) -> None:
        with pytest.raises(MissingRequiredDependency):
            HostPackages(PackagingBackend.UNSUPPORTED).is_installed("libcurl3")
