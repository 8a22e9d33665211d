"""Tests for the command line interface."""

from __future__ import annotations

import json

import jwt as pyjwt
import pytest
from click.testing import CliRunner

from crewspace.cli import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for var in (
        "CREWSPACE_HOME",
        "CREWSPACE_LOG_LEVEL",
        "CREWSPACE_JWT_SECRET",
        "CREWSPACE_BOOTSTRAP_OWNER_EMAIL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def home(tmp_path, runner: CliRunner):
    result = runner.invoke(main, ["--home", str(tmp_path), "init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def test_init(home) -> None:
    assert (home / "crewspace.db").exists()
    assert (home / "config.yaml").exists()


def test_init_records_owner_email(tmp_path, runner: CliRunner) -> None:
    result = runner.invoke(
        main, ["--home", str(tmp_path), "init", "--owner-email", "boss@example.com"]
    )
    assert result.exit_code == 0
    assert "boss@example.com" in (tmp_path / "config.yaml").read_text()


def test_signup_first_is_owner(home, runner: CliRunner) -> None:
    first = runner.invoke(
        main, ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"]
    )
    second = runner.invoke(
        main, ["--home", str(home), "user", "signup", "b@example.com", "--username", "b"]
    )

    assert first.exit_code == 0
    assert "Role: owner" in first.output
    assert "Role: user" in second.output


def test_duplicate_signup_exits_nonzero(home, runner: CliRunner) -> None:
    args = ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"]
    runner.invoke(main, args)
    result = runner.invoke(main, args)
    assert result.exit_code == 1


def test_set_role(home, runner: CliRunner) -> None:
    runner.invoke(main, ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"])
    runner.invoke(main, ["--home", str(home), "user", "signup", "b@example.com", "--username", "b"])

    ok = runner.invoke(
        main,
        ["--home", str(home), "user", "set-role", "b@example.com", "moderator",
         "--as", "a@example.com"],
    )
    assert ok.exit_code == 0, ok.output
    assert "is now moderator (admin: yes)" in ok.output

    denied = runner.invoke(
        main,
        ["--home", str(home), "user", "set-role", "a@example.com", "user",
         "--as", "b@example.com"],
    )
    assert denied.exit_code == 1


def test_user_token(home, runner: CliRunner, monkeypatch) -> None:
    monkeypatch.setenv("CREWSPACE_JWT_SECRET", "cli-secret")
    runner.invoke(main, ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"])

    result = runner.invoke(main, ["--home", str(home), "user", "token", "a@example.com"])
    assert result.exit_code == 0
    payload = pyjwt.decode(result.stdout.strip(), "cli-secret", algorithms=["HS256"])
    assert payload["sub"]


def test_user_token_unknown_email(home, runner: CliRunner) -> None:
    result = runner.invoke(main, ["--home", str(home), "user", "token", "ghost@example.com"])
    assert result.exit_code == 1


def test_status(home, runner: CliRunner) -> None:
    runner.invoke(main, ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"])
    result = runner.invoke(main, ["--home", str(home), "status"])

    assert result.exit_code == 0
    stats = json.loads(result.stdout)
    assert stats["users"] == 1
    assert stats["roles"] == {"owner": 1}


def test_status_without_database(tmp_path, runner: CliRunner) -> None:
    result = runner.invoke(main, ["--home", str(tmp_path / "empty"), "status"])
    assert result.exit_code == 1


def test_lists(home, runner: CliRunner) -> None:
    runner.invoke(main, ["--home", str(home), "user", "signup", "a@example.com", "--username", "a"])

    users = runner.invoke(main, ["--home", str(home), "user", "list"])
    workspaces = runner.invoke(main, ["--home", str(home), "workspace", "list"])

    assert users.exit_code == 0
    assert "Users (1)" in users.output
    assert workspaces.exit_code == 0
    assert "Workspaces (0)" in workspaces.output
