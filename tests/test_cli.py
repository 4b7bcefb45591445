from __future__ import annotations

import json

import pytest

from caddyfile_cli import run


@pytest.fixture
def caddyfile(tmp_path, sample_text: str):
    path = tmp_path / "Caddyfile"
    path.write_text(sample_text, encoding="utf-8")
    return path


def test_validate_ok(caddyfile, capsys) -> None:
    assert run(["validate", str(caddyfile)]) == 0
    assert "ok (confidence" in capsys.readouterr().out


def test_validate_broken(tmp_path, capsys) -> None:
    path = tmp_path / "Caddyfile"
    path.write_text("a.com {\n\trespond ok\n", encoding="utf-8")

    assert run(["validate", str(path)]) == 1
    assert "error: Unbalanced braces" in capsys.readouterr().out


def test_format_write(tmp_path) -> None:
    path = tmp_path / "Caddyfile"
    path.write_text("a.com {\n    file_server\n}", encoding="utf-8")

    assert run(["format", "--write", str(path)]) == 0
    assert path.read_text(encoding="utf-8") == "a.com {\n\tfile_server\n}\n"


def test_format_reports_parse_error(tmp_path, capsys) -> None:
    path = tmp_path / "Caddyfile"
    path.write_text("a.com\n{\n}\n", encoding="utf-8")

    assert run(["format", str(path)]) == 1
    assert "Error parsing" in capsys.readouterr().err


def test_stats(caddyfile, capsys) -> None:
    assert run(["stats", str(caddyfile)]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["services"] == 1


def test_containers(caddyfile, capsys) -> None:
    assert run(["containers", str(caddyfile)]) == 0
    containers = json.loads(capsys.readouterr().out)
    assert [c["wildcard_address"] for c in containers] == ["*.svc.example.com"]


def test_json_uses_default_path_from_environment(caddyfile, capsys, monkeypatch) -> None:
    monkeypatch.setenv("CADDYFILE_PATH", str(caddyfile))

    assert run(["json", "--simple"]) == 0
    assert json.loads(capsys.readouterr().out)["sites"][0]["tag"] == "main"


def test_missing_file(tmp_path, capsys) -> None:
    assert run(["stats", str(tmp_path / "nope")]) == 1
    assert "Cannot read" in capsys.readouterr().err
