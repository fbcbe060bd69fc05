"""Tests for the `jaws` command line."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from jaws.__main__ import build_parser, main


def _main(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


class TestParser:
    def test_module_create_arguments(self):
        args = build_parser().parse_args(
            ["module", "create", "users", "show", "--method", "post", "--query-param", "q"]
        )
        assert args.module == "users"
        assert args.method == "POST"
        assert args.query_param == ["q"]
        assert args.module_type == "both"

    def test_requires_a_verb(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["module"])


class TestCommands:
    def test_project_then_module_create(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ):
        monkeypatch.chdir(tmp_path)
        assert _main(["project", "create", "shop"]) == 0
        assert (tmp_path / "shop" / "jaws.toml").exists()

        from jaws.config import reset_settings

        reset_settings()
        monkeypatch.chdir(tmp_path / "shop")
        assert _main(["module", "create", "users", "show", "--path", "/users/{id}"]) == 0

        out = capsys.readouterr().out
        assert "Successfully created users/show" in out
        assert (tmp_path / "shop" / "aws_modules" / "users" / "show" / "awsm.json").exists()

    def test_module_create_outside_project_fails(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ):
        monkeypatch.chdir(tmp_path)
        assert _main(["module", "create", "users", "show"]) == 1
        assert "must be run inside a jaws project" in capsys.readouterr().err

    def test_stage_failure_is_reported(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ):
        (tmp_path / "jaws.toml").write_text("")
        (tmp_path / "aws_modules" / "users" / "show").mkdir(parents=True)
        monkeypatch.chdir(tmp_path)

        assert _main(["module", "create", "users", "show"]) == 1
        assert "Action stage 'action' failed" in capsys.readouterr().err

    def test_unknown_configured_plugin_is_reported(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ):
        (tmp_path / "jaws.toml").write_text(
            textwrap.dedent(
                """
                [plugins.does-not-exist]
                enabled = true
                """
            )
        )
        monkeypatch.chdir(tmp_path)

        assert _main(["module", "create", "users", "show"]) == 1
        assert "Failed to load plugin 'does-not-exist'" in capsys.readouterr().err
