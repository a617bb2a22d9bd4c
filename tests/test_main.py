"""Tests for the command line entry point."""

from pathlib import Path

from todo_client.main import build_parser, settings_from_args


def test_arguments_override_settings(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("TODO_API_BASE_URL", raising=False)
    args = build_parser().parse_args(
        [
            "--server",
            "https://todos.example.com/api/",
            "--state",
            str(tmp_path / "state.json"),
            "--log-level",
            "debug",
        ]
    )

    settings = settings_from_args(args)

    assert settings.base_url == "https://todos.example.com/api"
    assert settings.state_path == tmp_path / "state.json"
    assert settings.log_level == "debug"


def test_environment_used_without_arguments(monkeypatch) -> None:
    monkeypatch.setenv("TODO_API_BASE_URL", "http://10.0.0.5:5000/api")

    settings = settings_from_args(build_parser().parse_args([]))

    assert settings.base_url == "http://10.0.0.5:5000/api"
