"""
Tests for the expenseterminal CLI.
"""
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from expenseterminal.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "ExpenseTerminal CLI" in result.stdout


def test_billing_plans_lists_catalog():
    result = runner.invoke(app, ["billing", "plans"])
    assert result.exit_code == 0
    for name in ("Free", "Starter", "Plus"):
        assert name in result.stdout
    assert "unlimited" in result.stdout


@patch("expenseterminal.config.get_supabase_client", return_value=MagicMock())
def test_billing_plan_for_user(mock_client, subscriptions):
    subscriptions.rows = [{"user_id": "user-1", "plan": "plus", "status": "trialing"}]
    with patch("expenseterminal.commands.billing.SupabaseSubscriptionRepository", return_value=subscriptions):
        result = runner.invoke(app, ["billing", "plan", "user-1"])
    assert result.exit_code == 0
    assert "Effective plan: plus" in result.stdout
    assert "trialing" in result.stdout


@patch("expenseterminal.config.get_supabase_client", side_effect=RuntimeError("SUPABASE_URL not set"))
def test_billing_usage_reports_errors(mock_client):
    result = runner.invoke(app, ["billing", "usage", "user-1"])
    assert result.exit_code == 1
    assert "SUPABASE_URL not set" in result.stdout


def test_config_reports_missing(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "")
    with patch("expenseterminal.config._config", None):
        result = runner.invoke(app, ["config"])
    assert result.exit_code == 1
    assert "SUPABASE_URL" in result.stdout
