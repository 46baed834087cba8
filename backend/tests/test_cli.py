from settlement.services import cashier_session_service

from conftest import CASHIER


def test_sessions_list_and_reconcile(app, cashier_session):
    runner = app.test_cli_runner()

    listed = runner.invoke(args=["sessions", "list", "--status", "open"])
    assert listed.exit_code == 0
    assert f"#{cashier_session.id} {CASHIER} open" in listed.output

    cashier_session_service.update_totals(cashier_session.id, "cash", "5")

    preview = runner.invoke(args=["sessions", "reconcile", str(cashier_session.id)])
    assert preview.exit_code == 0
    assert "total_cash_sales: 5.00" in preview.output

    applied = runner.invoke(args=["sessions", "reconcile", str(cashier_session.id), "--apply"])
    assert "Recomputed totals written." in applied.output

    clean = runner.invoke(args=["sessions", "reconcile", str(cashier_session.id)])
    assert "Session totals match payments." in clean.output


def test_reconcile_unknown_session_fails(app):
    result = app.test_cli_runner().invoke(args=["sessions", "reconcile", "404"])

    assert result.exit_code != 0
    assert "Session not found" in result.output


def test_reset_db_requires_confirmation(app):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])

    assert result.exit_code != 0
    assert "--yes" in result.output
