"""Tests for path source precedence and the discovery command."""
from __future__ import annotations

import io
import os
import sys

import pytest

from nightwatch import resolver
from nightwatch.core.errors import DiscoveryError
from nightwatch.core.paths import WatchTarget


@pytest.fixture()
def piped_stdin(tmp_path):
    handles = []

    def factory(text: str):
        path = tmp_path / "stdin.txt"
        path.write_text(text, encoding="utf-8")
        handle = open(path, "r", encoding="utf-8")
        handles.append(handle)
        return handle

    yield factory

    for handle in handles:
        handle.close()


def test_stdin_is_piped_for_pipes_and_files(tmp_path, piped_stdin):
    read_fd, write_fd = os.pipe()
    try:
        with os.fdopen(read_fd, "r") as reader:
            assert resolver.stdin_is_piped(reader)
    finally:
        os.close(write_fd)

    assert resolver.stdin_is_piped(piped_stdin("a\n"))


def test_stdin_is_not_piped_for_devnull_or_fake_streams():
    with open(os.devnull, "r", encoding="utf-8") as devnull:
        assert not resolver.stdin_is_piped(devnull)
    assert not resolver.stdin_is_piped(io.StringIO("a\n"))
    assert not resolver.stdin_is_piped(None)


def test_stdin_takes_priority_over_files_and_command(tmp_path, piped_stdin):
    stdin = piped_stdin("one.txt\n\ntwo.txt\n")

    raw = resolver.raw_targets(["ignored.txt"], "exit 9", stdin)

    assert raw == ["one.txt", "two.txt"]


def test_static_list_takes_priority_over_command():
    raw = resolver.raw_targets(["a.txt", "b.txt"], "exit 9", io.StringIO(""))

    assert raw == ["a.txt", "b.txt"]


def test_discovery_command_output_is_used_as_last_resort(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_text("a", encoding="utf-8")
    (tmp_path / "b.txt").write_text("b", encoding="utf-8")
    monkeypatch.setenv("SHELL", "/bin/sh")

    targets = resolver.resolve((), "printf 'a.txt\\nb.txt\\n'", None)

    assert targets == [
        WatchTarget(str(tmp_path / "a.txt")),
        WatchTarget(str(tmp_path / "b.txt")),
    ]


def test_discovery_command_failure_carries_its_exit_code(monkeypatch):
    monkeypatch.setenv("SHELL", "/bin/sh")

    with pytest.raises(DiscoveryError) as excinfo:
        resolver.run_discovery("echo nope >&2; exit 5")

    assert excinfo.value.exit_code == 5
    assert "nope" in str(excinfo.value)


def test_discovery_falls_back_to_sh_without_shell_variable(monkeypatch):
    monkeypatch.delenv("SHELL", raising=False)

    assert resolver.run_discovery("echo found.txt") == ["found.txt"]


def test_resolve_collapses_directory_targets(tmp_path):
    (tmp_path / "b.txt").write_text("b", encoding="utf-8")

    targets = resolver.resolve([str(tmp_path), str(tmp_path / "b.txt")], "exit 1", None)

    assert targets == [WatchTarget(str(tmp_path), is_directory=True)]


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts arbitrary name bytes")
def test_discovery_keeps_names_that_are_not_utf8(tmp_path, monkeypatch, sh_shell):
    name = os.fsdecode(b"caf\xe9.txt")
    with open(os.path.join(os.fsencode(tmp_path), b"caf\xe9.txt"), "wb"):
        pass
    monkeypatch.chdir(tmp_path)

    targets = resolver.resolve((), "find . -type f", None)

    assert targets == [WatchTarget(os.path.join(str(tmp_path), name))]


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts arbitrary name bytes")
def test_piped_stdin_keeps_names_that_are_not_utf8(tmp_path):
    listing = tmp_path / "listing.txt"
    listing.write_bytes(b"caf\xe9.txt\nplain.txt\n")

    with open(listing, "r", encoding="utf-8") as stdin:
        raw = resolver.raw_targets((), "exit 9", stdin)

    assert raw == [os.fsdecode(b"caf\xe9.txt"), "plain.txt"]
