"""Tests for the output sinks."""

import subprocess

from render import output_format, write_graph

DOT = "digraph {\n}"


def test_output_format():
    assert output_format("forks.PDF") == "pdf"
    assert output_format("forks.dot") == "dot"
    assert output_format("forks") == ""


def test_dot_extension_writes_raw_text(tmp_path):
    path = tmp_path / "forks.dot"
    result = write_graph(DOT, str(path))

    assert result.ok
    assert result.status == 0
    assert path.read_text(encoding="utf-8") == DOT


def test_write_failure_is_reported(tmp_path):
    path = tmp_path / "missing" / "forks.dot"
    result = write_graph(DOT, str(path))

    assert not result.ok
    assert result.message


def test_render_invokes_graphviz(monkeypatch, tmp_path):
    calls = []

    def fake_run(args, input, capture_output):
        calls.append((args, input))
        return subprocess.CompletedProcess(args, 0, b"", b"")

    monkeypatch.setattr(subprocess, "run", fake_run)
    path = str(tmp_path / "forks.png")

    result = write_graph(DOT, path)

    assert result.ok
    assert calls == [(["dot", "-Tpng", "-o", path], DOT.encode("utf-8"))]


def test_render_nonzero_exit_is_reported(monkeypatch, tmp_path):
    def fake_run(args, input, capture_output):
        return subprocess.CompletedProcess(args, 1, b"", b"Error: syntax error in line 1")

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = write_graph(DOT, str(tmp_path / "forks.pdf"))

    assert not result.ok
    assert result.status == 1
    assert "syntax error" in result.message


def test_missing_renderer_is_reported(tmp_path):
    result = write_graph(DOT, str(tmp_path / "forks.svg"), renderer="no-such-renderer-binary")

    assert not result.ok
    assert result.status is None


def test_unknown_extension_writes_raw_text(monkeypatch, tmp_path):
    def fail_run(*args, **kwargs):
        raise AssertionError("graphviz should not run")

    monkeypatch.setattr(subprocess, "run", fail_run)
    path = tmp_path / "forks.txt"

    result = write_graph(DOT, str(path))

    assert result.ok
    assert path.read_text(encoding="utf-8") == DOT
