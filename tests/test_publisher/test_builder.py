"""Tests for the autotools builder."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from nativepack.errors import ExternalToolFailure
from nativepack.publisher.builder import AutotoolsBuilder, discover_java_bin, job_count


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    src = tmp_path / "mesos-repo"
    src.mkdir()
    return src


@pytest.fixture(autouse=True)
def four_cores():
    with patch("nativepack.publisher.builder.psutil.cpu_count", return_value=4):
        yield


def _builder(source_dir: Path, tmp_path: Path) -> AutotoolsBuilder:
    return AutotoolsBuilder(source_dir, jvm_root=tmp_path / "no-jvm")


class TestJobCount:
    def test_twice_the_cores(self) -> None:
        assert job_count() == 8

    def test_unknown_core_count(self) -> None:
        with patch("nativepack.publisher.builder.psutil.cpu_count", return_value=None):
            assert job_count() == 2


class TestDiscoverJava:
    def test_finds_jdk(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("JAVA_HOME", raising=False)
        javac = tmp_path / "jvm" / "java-7-openjdk-amd64" / "bin" / "javac"
        javac.parent.mkdir(parents=True)
        javac.touch()
        (tmp_path / "jvm" / "java-6-jre" / "bin").mkdir(parents=True)
        assert discover_java_bin(tmp_path / "jvm") == javac.parent

    def test_java_home_wins(self, tmp_path: Path, monkeypatch) -> None:
        home = tmp_path / "custom-jdk"
        (home / "bin").mkdir(parents=True)
        (home / "bin" / "javac").touch()
        monkeypatch.setenv("JAVA_HOME", str(home))
        assert discover_java_bin(tmp_path / "jvm") == home / "bin"

    def test_no_jdk(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("JAVA_HOME", raising=False)
        assert discover_java_bin(tmp_path / "missing") is None


class TestBuild:
    def test_bootstraps_when_configure_missing(self, source_dir, tmp_path, make_plan) -> None:
        builder = _builder(source_dir, tmp_path)
        with patch("nativepack.publisher.builder.runner.run") as run:
            assert builder.build(make_plan("0.21.0")) == source_dir / "build"

        commands = [c.args[0] for c in run.call_args_list]
        assert commands == [
            ["./bootstrap"],
            ["../configure", "--prefix=/usr", "--enable-optimize"],
            ["make", "-j8"],
        ]
        assert run.call_args_list[0].kwargs["cwd"] == source_dir
        assert run.call_args_list[1].kwargs["cwd"] == source_dir / "build"

    def test_skips_bootstrap_when_configured(self, source_dir, tmp_path, make_plan) -> None:
        (source_dir / "configure").touch()
        builder = _builder(source_dir, tmp_path)
        with patch("nativepack.publisher.builder.runner.run") as run:
            builder.build(make_plan("0.19.0"))
        commands = [c.args[0] for c in run.call_args_list]
        assert commands[0] == ["../configure", "--prefix=/usr"]

    def test_compilers_and_java_in_env(self, source_dir, tmp_path, make_plan, monkeypatch) -> None:
        monkeypatch.delenv("JAVA_HOME", raising=False)
        javac = tmp_path / "jvm" / "jdk" / "bin" / "javac"
        javac.parent.mkdir(parents=True)
        javac.touch()
        builder = AutotoolsBuilder(source_dir, jvm_root=tmp_path / "jvm")
        plan = make_plan(cc="/usr/bin/gcc-4.8", cxx="/usr/bin/g++-4.8")
        with patch("nativepack.publisher.builder.runner.run") as run:
            builder.build(plan)

        env = run.call_args.kwargs["env"]
        assert env["CC"] == "/usr/bin/gcc-4.8"
        assert env["CXX"] == "/usr/bin/g++-4.8"
        assert env["PATH"].startswith(str(javac.parent))

    def test_failure_stops_build(self, source_dir, tmp_path, make_plan) -> None:
        builder = _builder(source_dir, tmp_path)
        with patch("nativepack.publisher.builder.runner.run",
                   side_effect=[None, ExternalToolFailure(["../configure"], 77)]) as run:
            with pytest.raises(ExternalToolFailure):
                builder.build(make_plan())
        assert run.call_count == 2


class TestInstall:
    def test_destdir(self, source_dir, tmp_path, make_plan) -> None:
        staging = tmp_path / "toor"
        builder = _builder(source_dir, tmp_path)
        with patch("nativepack.publisher.builder.runner.run") as run:
            builder.install(make_plan(), staging)
        run.assert_called_once()
        assert run.call_args.args[0] == ["make", "install", f"DESTDIR={staging}"]
        assert run.call_args.kwargs["sudo"] is False
        assert staging.is_dir()

    def test_sudo_hands_tree_back(self, source_dir, tmp_path, make_plan) -> None:
        builder = _builder(source_dir, tmp_path)
        with patch("nativepack.publisher.builder.runner.run") as run:
            builder.install(make_plan(use_sudo=True), tmp_path / "toor")
        assert run.call_count == 2
        assert run.call_args_list[0].kwargs["sudo"] is True
        assert run.call_args_list[1].args[0][:2] == ["chown", "-R"]


class TestRuntimePackages:
    def test_collects_eggs_and_wheels(self, source_dir, tmp_path) -> None:
        dist = source_dir / "build" / "src" / "python" / "dist"
        dist.mkdir(parents=True)
        (dist / "mesos-0.21.0-py2.7.egg").write_bytes(b"egg")
        (dist / "mesos.native-0.21.0-cp27-none-linux_x86_64.whl").write_bytes(b"whl")
        (dist / "notes.txt").write_text("ignored")

        out = tmp_path / "out"
        copied = _builder(source_dir, tmp_path).collect_runtime_packages(out)

        assert sorted(p.name for p in copied) == [
            "mesos-0.21.0-py2.7.egg",
            "mesos.native-0.21.0-cp27-none-linux_x86_64.whl",
        ]
        assert (out / "mesos-0.21.0-py2.7.egg").read_bytes() == b"egg"

    def test_discards_previous_run(self, source_dir, tmp_path) -> None:
        dist = source_dir / "build" / "src" / "python" / "dist"
        dist.mkdir(parents=True)
        (dist / "mesos-0.20.0-py2.7.egg").write_bytes(b"old egg")
        out = tmp_path / "out"
        out.mkdir()
        (out / "mesos-0.20.0-py2.7.egg").write_bytes(b"old egg")
        (out / "chronos-2.3.0-py2.7.egg").write_bytes(b"unrelated")

        builder = _builder(source_dir, tmp_path)
        builder.discard_runtime_packages(out)

        assert not (dist / "mesos-0.20.0-py2.7.egg").exists()
        assert not (out / "mesos-0.20.0-py2.7.egg").exists()
        assert (out / "chronos-2.3.0-py2.7.egg").exists()
        assert builder.collect_runtime_packages(out) == []

    def test_discard_without_build_dir(self, source_dir, tmp_path) -> None:
        _builder(source_dir, tmp_path).discard_runtime_packages(tmp_path / "out")
