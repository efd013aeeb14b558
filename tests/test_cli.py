"""Tests for the orgtx command line."""

import json
import tempfile
from pathlib import Path

import pytest

from orgtransclude import __version__
from orgtransclude.cli import main


@pytest.fixture
def org_dir(monkeypatch):
    """Temporary org files; also the working directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.org").write_text("* Alpha\n:PROPERTIES:\n:ID: alpha-id\n:END:\nalpha body\n")
        (root / "main.org").write_text(
            "#+TITLE: Main\n"
            "#+transclude: [[id:alpha-id]] :only-contents\n"
            "#+transclude: [[./a.org::*Gamma]]\n"
        )
        (root / "good.org").write_text("#+transclude: [[./a.org::*Alpha]] :no-first-heading\n")
        monkeypatch.chdir(root)
        yield root


def run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_version(capsys):
    """Test --version output."""
    assert run(["--version"]) == 0
    out = capsys.readouterr().out
    assert f"orgtransclude {__version__}" in out
    assert "python" in out
    assert "platform" in out


def test_render(org_dir, capsys):
    """Test printing an expanded document."""
    assert run(["--root", str(org_dir), "render", "good.org"]) == 0
    assert capsys.readouterr().out == ":PROPERTIES:\n:ID: alpha-id\n:END:\nalpha body\n"


def test_render_keep_directives(org_dir, capsys):
    """Test that --keep-directives keeps the directive line."""
    assert run(["--root", str(org_dir), "render", "--keep-directives", "good.org"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("#+transclude: [[./a.org::*Alpha]] :no-first-heading\n")


def test_list(org_dir, capsys):
    """Test listing directives as text and JSON."""
    assert run(["--root", str(org_dir), "list", "main.org"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "0\tid:alpha-id\tID: alpha-id...\t:only-contents",
        "1\t./a.org::*Gamma\t./a.org -> *Gamma",
    ]

    assert run(["--root", str(org_dir), "list", "--json", "main.org"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [d["body"] for d in data] == ["alpha-id", "./a.org"]


def test_resolve(org_dir, capsys):
    """Test resolution summaries and the failure exit code."""
    assert run(["--root", str(org_dir), "resolve", "main.org"]) == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "✓ id:alpha-id: alpha-id from a.org"
    assert lines[1] == "✗ ./a.org::*Gamma: [invalid_target] Target not found: *Gamma"

    assert run(["--root", str(org_dir), "resolve", "--index", "0", "main.org"]) == 0
    capsys.readouterr()

    assert run(["--root", str(org_dir), "resolve", "--json", "--index", "1", "main.org"]) == 1
    data = json.loads(capsys.readouterr().out)
    assert data[0]["result"]["kind"] == "invalid_target"


def test_check(org_dir, capsys):
    """Test the dead transclusion check."""
    assert run(["--root", str(org_dir), "check", "good.org"]) == 0
    assert "All transclusions resolve" in capsys.readouterr().out

    # Invalid targets are warnings only
    assert run(["--root", str(org_dir), "check", "main.org"]) == 0
    assert "warn: ./a.org::*Gamma: Target not found: *Gamma" in capsys.readouterr().out

    (org_dir / "broken.org").write_text("#+transclude: [[./gone.org]]\n")
    assert run(["--root", str(org_dir), "check", "broken.org"]) == 1
    assert "error: ./gone.org: File not found: ./gone.org" in capsys.readouterr().out


def test_missing_file(org_dir, capsys):
    """Test the error path for a document that does not exist."""
    assert run(["--root", str(org_dir), "render", "nope.org"]) == 1
    assert "Error: File not found" in capsys.readouterr().err


def test_bad_config(org_dir, capsys):
    """Test that config errors are reported, not raised."""
    (org_dir / "orgtx.toml").write_text("[transclusion]\nmax_depth = 0\n")
    assert run(["render", "good.org"]) == 1
    assert "max_depth" in capsys.readouterr().err


def test_list_closes_session(org_dir, capsys, monkeypatch):
    """Test that listing releases the document session."""
    from orgtransclude.runtime import DocumentSession

    closed = []
    original = DocumentSession.close

    def close(self):
        closed.append(self.source.name)
        original(self)

    monkeypatch.setattr(DocumentSession, "close", close)

    assert run(["--root", str(org_dir), "list", "main.org"]) == 0
    assert closed == ["main.org"]
