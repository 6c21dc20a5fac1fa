"""
CLI command tests (flask users / backup).
"""

import json

from counterpos.extensions import db
from counterpos.models import User
from counterpos.services import session_service


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--username", "alice", "--password", "secret1", "--role", "admin"])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: alice" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "alice" in result.output


def test_users_create_rejects_short_password(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--username", "alice", "--password", "123", "--role", "admin"])

    assert result.exit_code == 1
    assert "FAIL" in result.output
    assert db.session.query(User).count() == 0


def test_users_logout(app, db_session, admin_user):
    session_service.login("admin", "secret1")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "logout", "admin"])

    assert "PASS admin logged out" in result.output
    db.session.expire_all()
    assert db.session.get(User, admin_user.id).session_token_hash is None


def test_backup_export_import(app, db_session, admin_user, tmp_path):
    path = tmp_path / "backup.json"
    runner = app.test_cli_runner()

    result = runner.invoke(args=["backup", "export", str(path)])
    assert result.exit_code == 0, result.output
    assert json.loads(path.read_text())["users"][0]["username"] == "admin"

    result = runner.invoke(args=["backup", "import", str(path), "--yes"])
    assert result.exit_code == 0, result.output
    assert "PASS Restored 1 users" in result.output
