#!/usr/bin/env python3
"""Tests for the account management CLI."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from stackit import manage
from stackit.auth.passwords import PasswordHasher
from stackit.auth.store import CredentialStore


def run(db_path, *argv):
    return manage.main(["--db-path", str(db_path), *argv])


class TestManage:
    def test_no_command_prints_help(self, tmp_path, capsys):
        assert manage.main(["--db-path", str(tmp_path / "u.db")]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_add_user(self, tmp_path, capsys):
        db = tmp_path / "users.db"
        code = run(
            db, "add-user", "--username", "alice", "--email", "A@x.com",
            "--password", "Secret123", "--rounds", "4",
        )
        assert code == 0
        assert "User created" in capsys.readouterr().out

        store = CredentialStore(db_path=str(db))
        identity = store.find_by_email("a@x.com")
        assert identity.username == "alice"
        assert PasswordHasher(rounds=4).verify("Secret123", identity.password_hash)
        store.close()

    def test_add_duplicate(self, tmp_path, capsys):
        db = tmp_path / "users.db"
        args = ["add-user", "--username", "alice", "--email", "a@x.com",
                "--password", "Secret123", "--rounds", "4"]
        assert run(db, *args) == 0
        assert run(db, *args) == 1
        assert "User already exists" in capsys.readouterr().err

    def test_add_invalid(self, tmp_path, capsys):
        code = run(
            tmp_path / "users.db", "add-user", "--username", "alice",
            "--email", "nope", "--password", "Secret123", "--rounds", "4",
        )
        assert code == 1
        assert "Invalid email address" in capsys.readouterr().err

    def test_add_prompts_for_password(self, tmp_path, monkeypatch):
        monkeypatch.setattr(manage.getpass, "getpass", lambda prompt: "Prompted123")
        db = tmp_path / "users.db"
        code = run(db, "add-user", "--username", "bob", "--email", "b@x.com", "--rounds", "4")
        assert code == 0
        store = CredentialStore(db_path=str(db))
        assert PasswordHasher(rounds=4).verify(
            "Prompted123", store.find_by_email("b@x.com").password_hash
        )
        store.close()

    def test_empty_prompt_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setattr(manage.getpass, "getpass", lambda prompt: "")
        code = run(tmp_path / "users.db", "add-user", "--username", "bob", "--email", "b@x.com")
        assert code == 1

    def test_list_users(self, tmp_path, capsys):
        db = tmp_path / "users.db"
        assert run(db, "list-users") == 0
        assert "No users found" in capsys.readouterr().out

        run(db, "add-user", "--username", "alice", "--email", "a@x.com",
            "--password", "Secret123", "--rounds", "4")
        capsys.readouterr()
        assert run(db, "list-users") == 0
        out = capsys.readouterr().out
        assert "alice" in out
        assert "a@x.com" in out
        assert "$2" not in out

    def test_rounds_out_of_range(self, tmp_path, capsys):
        """argparse rejects the cost factor before any store work, no traceback."""
        with pytest.raises(SystemExit) as exc_info:
            run(
                tmp_path / "users.db", "add-user", "--username", "alice",
                "--email", "a@x.com", "--password", "Secret123", "--rounds", "40",
            )
        assert exc_info.value.code == 2
        err = capsys.readouterr().err
        assert "--rounds" in err
        assert "Traceback" not in err
        assert not (tmp_path / "users.db").exists()
