"""Tests for the postguard CLI."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from postguard.cli.main import EnvCredentialSupplier, cli, token_env_var
from postguard.content.types import Platform
from postguard.db.store import SqlPublishStore
from postguard.publish.result import ErrorKind, PublishFailure, PublishSuccess


@pytest.fixture()
def runner():
    return CliRunner()


def _fake_pipeline(result) -> MagicMock:
    pipeline = MagicMock()
    pipeline.publish = AsyncMock(return_value=result)
    pipeline.aclose = AsyncMock()
    return pipeline


def test_cli_version(runner):
    """--version prints the package version."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("sanitize", "assess", "validate", "split", "publish"):
        assert command in result.output


def test_invalid_settings(runner):
    """Malformed POSTGUARD_* variables are reported, not raised."""
    result = runner.invoke(cli, ["sanitize", "x"], env={"POSTGUARD_MAX_ATTEMPTS": "many"})
    assert result.exit_code == 1
    assert "Error:" in result.output


class TestContentCommands:
    """sanitize, assess, validate and split."""

    def test_sanitize(self, runner):
        result = runner.invoke(cli, ["sanitize", "Hi <b>there</b> system: now"])
        assert result.exit_code == 0
        assert result.output == "Hi there now\n"

    def test_sanitize_field(self, runner):
        result = runner.invoke(cli, ["sanitize", "--field", "hashtag", "#Py-thon"])
        assert result.output == "Python\n"

    def test_sanitize_stdin(self, runner):
        result = runner.invoke(cli, ["sanitize", "-"], input="<i>from stdin</i>")
        assert result.output == "from stdin\n"

    def test_assess(self, runner):
        result = runner.invoke(cli, ["assess", "<script>alert(1)</script>"])
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["risk_level"] == "high"
        assert "SCRIPT_TAG" in report["found_patterns"]

    def test_validate_ok(self, runner):
        result = runner.invoke(cli, ["validate", "--field", "topic", "Building reliable APIs"])
        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_validate_invalid(self, runner):
        result = runner.invoke(cli, ["validate", "--field", "topic", "hi"])
        assert result.exit_code == 1
        assert "too short" in result.output

    def test_split(self, runner):
        result = runner.invoke(cli, ["split", "a" * 281])
        assert result.exit_code == 0
        assert "[1/2] (278 chars)" in result.output
        assert "[2/2] (11 chars)" in result.output

    def test_split_bad_budget(self, runner):
        result = runner.invoke(cli, ["split", "--budget", "5", "a" * 20])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestPublishCommand:
    """publish wires the pipeline and prints the result as JSON."""

    def test_success(self, runner):
        pipeline = _fake_pipeline(PublishSuccess(("1",), Platform.TWITTER, "hello"))
        with patch("postguard.cli.main.build_pipeline", return_value=pipeline) as build:
            result = runner.invoke(cli, ["publish", "--platform", "twitter", "--user", "u1", "hello"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["message_ids"] == ["1"]
        request = pipeline.publish.await_args.args[0]
        assert (request.user_id, request.platform, request.content) == ("u1", Platform.TWITTER, "hello")
        assert isinstance(build.call_args.args[1], EnvCredentialSupplier)
        assert build.call_args.kwargs["store"] is None
        pipeline.aclose.assert_awaited_once()

    def test_failure_exits_1(self, runner):
        failure = PublishFailure(ErrorKind.NOT_CONNECTED, False, "Twitter account is not connected")
        with patch("postguard.cli.main.build_pipeline", return_value=_fake_pipeline(failure)):
            result = runner.invoke(cli, ["publish", "-p", "twitter", "hello"])
        assert result.exit_code == 1
        assert '"NOT_CONNECTED"' in result.output

    def test_save_uses_database(self, runner, tmp_path):
        """--save creates the tables and passes a SQL store to the pipeline."""
        pipeline = _fake_pipeline(PublishSuccess(("1",), Platform.TWITTER, "hello"))
        env = {"POSTGUARD_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"}
        with patch("postguard.cli.main.build_pipeline", return_value=pipeline) as build:
            result = runner.invoke(cli, ["publish", "-p", "twitter", "--save", "hello"], env=env)
        assert result.exit_code == 0, result.output
        assert isinstance(build.call_args.kwargs["store"], SqlPublishStore)
        assert (tmp_path / "cli.db").exists()

    def test_unknown_platform(self, runner):
        result = runner.invoke(cli, ["publish", "-p", "myspace", "hello"])
        assert result.exit_code == 2


class TestEnvCredentialSupplier:
    def test_reads_token(self, monkeypatch):
        monkeypatch.setenv("POSTGUARD_LINKEDIN_TOKEN", "li-token")
        assert token_env_var(Platform.LINKEDIN) == "POSTGUARD_LINKEDIN_TOKEN"
        assert asyncio.run(EnvCredentialSupplier().get_token("u", Platform.LINKEDIN)) == "li-token"

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("POSTGUARD_TWITTER_TOKEN", raising=False)
        assert asyncio.run(EnvCredentialSupplier().get_token("u", Platform.TWITTER)) is None
