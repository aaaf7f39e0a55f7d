from datetime import datetime, timezone

from main import _list_users, _parse_args
from portal.database import Database


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_list_users_subcommand_available() -> None:
    args = _parse_args(["list-users"])
    assert args.command == "list-users"


def test_list_users_prints_table(tmp_path, capsys) -> None:
    database = Database(tmp_path / "portal.sqlite3")
    database.initialize()
    _list_users(database)
    assert "No users are currently registered." in capsys.readouterr().out

    database.find_or_create_user("auth0|cli")
    _list_users(database)
    output = capsys.readouterr().out
    assert "1 user(s) found:" in output
    assert "auth0|cli" in output
    assert str(datetime.now(timezone.utc).year) in output
