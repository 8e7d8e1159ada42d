"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest

from app.cli import create_parser, main


class TestParser:
    """Argument parsing."""

    def test_classify_arguments(self) -> None:
        args = create_parser().parse_args(["classify", "-t", "Fix bug", "-d", "asap"])

        assert args.command == "classify"
        assert args.title == "Fix bug"
        assert args.description == "asap"

    def test_classify_requires_title(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["classify"])

    def test_serve_defaults(self) -> None:
        args = create_parser().parse_args(["serve"])

        assert args.host == "0.0.0.0"
        assert args.port is None


class TestClassifyCommand:
    """`classify` prints the classification as JSON."""

    def test_prints_result(self, capsys) -> None:
        exit_code = main([
            "classify",
            "--title", "Process invoice payment",
            "--description", "Review budget with Maria",
        ])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["category"] == "finance"
        assert output["priority"] == "low"
        assert output["suggested_actions"][0] == "Check budget"
        assert output["extracted_entities"]["persons"] == ["Maria"]
        assert output["extracted_entities"]["actionVerbs"] == ["review"]

    def test_description_is_optional(self, capsys) -> None:
        assert main(["classify", "--title", "Task"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["category"] == "general"


class TestServeCommand:
    """`serve` starts uvicorn."""

    def test_uses_configured_port(self) -> None:
        with patch("uvicorn.run") as mock_run:
            exit_code = main(["serve"])

        assert exit_code == 0
        mock_run.assert_called_once_with("app.main:app", host="0.0.0.0", port=3000, log_level="info")

    def test_port_argument_overrides_settings(self) -> None:
        with patch("uvicorn.run") as mock_run:
            main(["serve", "--host", "127.0.0.1", "--port", "8080"])

        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"
        assert mock_run.call_args.kwargs["port"] == 8080

    def test_configuration_error(self, monkeypatch, capsys) -> None:
        from app.config import get_settings

        monkeypatch.setenv("SUPABASE_URL", "http://insecure.example.com")
        get_settings.cache_clear()

        with patch("uvicorn.run") as mock_run:
            exit_code = main(["serve"])

        assert exit_code == 1
        assert "Configuration error" in capsys.readouterr().out
        mock_run.assert_not_called()


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()
