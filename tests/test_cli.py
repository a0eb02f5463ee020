"""
Tests for the administrative CLI.
"""
import pytest
from typer.testing import CliRunner

from referhub.auth.tokens import decode_access_token
from referhub.cli import app
from referhub.organizations.models import UserRole

runner = CliRunner()


@pytest.fixture
def db_args(tmp_path):
    """Global options pointing the CLI at a scratch database"""
    args = ["--database-url", f"sqlite:///{tmp_path / 'cli.db'}"]
    result = runner.invoke(app, [*args, "init"])
    assert result.exit_code == 0, result.output
    return args


class TestCli:
    """Tests for the referhub command"""

    def test_init(self, db_args):
        result = runner.invoke(app, [*db_args, "init"])
        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_org_create_and_list(self, db_args):
        result = runner.invoke(
            app,
            [*db_args, "org-create", "--name", "Acme", "--points", "40", "--admin-email", "ops@acme.io"],
        )
        assert result.exit_code == 0, result.output
        assert "Organization created" in result.output

        listed = runner.invoke(app, [*db_args, "org-list"])
        assert listed.exit_code == 0
        assert "Acme" in listed.output

    def test_duplicate_org_fails(self, db_args):
        runner.invoke(app, [*db_args, "org-create", "--name", "Acme"])
        result = runner.invoke(app, [*db_args, "org-create", "--name", "acme"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_status_list(self, db_args):
        runner.invoke(app, [*db_args, "org-create", "--name", "Acme"])
        result = runner.invoke(app, [*db_args, "status-list", "1"])

        assert result.exit_code == 0, result.output
        assert "Pending" in result.output
        assert "conversion" in result.output

    def test_status_list_unknown_org(self, db_args):
        result = runner.invoke(app, [*db_args, "status-list", "42"])
        assert result.exit_code == 1

    def test_user_create_and_token(self, db_args):
        runner.invoke(app, [*db_args, "org-create", "--name", "Acme"])
        created = runner.invoke(
            app,
            [*db_args, "user-create", "--org", "1", "--email", "ada@acme.io", "--role", "ADMIN"],
        )
        assert created.exit_code == 0, created.output

        result = runner.invoke(app, [*db_args, "token", "1"])
        assert result.exit_code == 0, result.output

        token = result.output.strip().splitlines()[-1]
        caller = decode_access_token(token)
        assert caller.user_id == 1
        assert caller.org_id == 1
        assert caller.role == UserRole.ADMIN

    def test_user_create_unknown_org(self, db_args):
        result = runner.invoke(app, [*db_args, "user-create", "--org", "9", "--email", "ada@acme.io"])
        assert result.exit_code == 1
