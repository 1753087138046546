"""Payable ledger tests: balances, payments, reversals and the overdue sweep."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from shopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from shopledger.models.payable import AccountsPayable, PayableStatus
from shopledger.services.payable_ledger_service import PayableLedgerService, derive_status

TODAY = date(2026, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)


def _assert_consistent(payable: AccountsPayable):
    assert payable.balance_due == payable.total_amount_due - payable.amount_paid
    assert (payable.status == PayableStatus.PAID) == (payable.balance_due <= 0)


@pytest.fixture
def ledger(db_session):
    return PayableLedgerService(db_session)


class TestDeriveStatus:

    def test_settled_is_paid(self):
        assert derive_status(Decimal("100"), Decimal("100"), PayableStatus.OPEN) == PayableStatus.PAID
        assert derive_status(Decimal("100"), Decimal("100"), PayableStatus.OVERDUE) == PayableStatus.PAID

    def test_paid_with_balance_reopens(self):
        assert derive_status(Decimal("100"), Decimal("40"), PayableStatus.PAID) == PayableStatus.OPEN

    def test_other_status_kept(self):
        assert derive_status(Decimal("100"), Decimal("40"), PayableStatus.OVERDUE) == PayableStatus.OVERDUE
        assert derive_status(Decimal("100"), Decimal("0")) == PayableStatus.OPEN


class TestCreatePayable:

    def test_defaults(self, ledger, test_supplier):
        payable = ledger.create_payable("Brake pads invoice 118", "250.00", TODAY, supplier_id=test_supplier.id)
        assert payable.status == PayableStatus.OPEN
        assert payable.amount_paid == Decimal("0")
        assert payable.balance_due == Decimal("250.00")
        assert payable.paid_at is None
        assert payable.version == 1
        _assert_consistent(payable)

    def test_fully_paid_at_creation(self, ledger, db_session):
        payable = ledger.create_payable("Cash purchase", "80.00", TODAY, amount_paid="80.00")
        assert payable.status == PayableStatus.PAID
        assert payable.balance_due == Decimal("0")
        assert payable.paid_at is not None
        payments = ledger.list_payments(payable.id)
        assert [p.amount for p in payments] == [Decimal("80.00")]

    def test_accepts_iso_date_string(self, ledger):
        payable = ledger.create_payable("Rent", "1200", "2026-04-05")
        assert payable.due_date == date(2026, 4, 5)

    @pytest.mark.parametrize("kwargs", [
        {"description": "", "total_amount_due": "10", "due_date": TODAY},
        {"description": "   ", "total_amount_due": "10", "due_date": TODAY},
        {"description": "x", "total_amount_due": "0", "due_date": TODAY},
        {"description": "x", "total_amount_due": "-5", "due_date": TODAY},
        {"description": "x", "total_amount_due": None, "due_date": TODAY},
        {"description": "x", "total_amount_due": "10", "due_date": None},
        {"description": "x", "total_amount_due": "10", "due_date": "10/03/2026"},
        {"description": "x", "total_amount_due": "10", "due_date": TODAY, "amount_paid": "11"},
        {"description": "x", "total_amount_due": "10", "due_date": TODAY, "amount_paid": "-1"},
        {"description": "x", "total_amount_due": "10", "due_date": TODAY, "status": PayableStatus.PAID},
    ])
    def test_rejects_invalid_input(self, ledger, db_session, kwargs):
        with pytest.raises(ValidationError):
            ledger.create_payable(**kwargs)
        assert db_session.query(AccountsPayable).count() == 0

    def test_unknown_supplier(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.create_payable("x", "10", TODAY, supplier_id=404)


class TestPayments:

    def test_overdue_then_paid_then_rejected(self, ledger, db_session):
        """total=1000 due yesterday: sweep -> overdue, pay 1000 -> paid, pay again -> rejected."""
        payable = ledger.create_payable("Parts supplier invoice", "1000", YESTERDAY)

        assert ledger.mark_overdue(today=TODAY) == 1
        db_session.refresh(payable)
        assert payable.status == PayableStatus.OVERDUE

        payable = ledger.register_payment(payable.id, "1000", payment_date=TODAY)
        assert payable.status == PayableStatus.PAID
        assert payable.balance_due == Decimal("0")
        assert payable.paid_at is not None
        _assert_consistent(payable)

        with pytest.raises(ValidationError, match="already paid"):
            ledger.register_payment(payable.id, "1")

    def test_reversal_larger_than_paid_is_rejected(self, ledger):
        """total=500, pay 300 -> balance 200 open; reverse 400 -> rejected."""
        payable = ledger.create_payable("Tools", "500", TODAY)
        payable = ledger.register_payment(payable.id, "300")
        assert payable.balance_due == Decimal("200")
        assert payable.status == PayableStatus.OPEN

        with pytest.raises(ValidationError):
            ledger.reverse_payment(payable.id, "400")
        payable = ledger.get_payable(payable.id)
        assert payable.amount_paid == Decimal("300")
        _assert_consistent(payable)

    def test_overpayment_rejected(self, ledger):
        payable = ledger.create_payable("Tools", "500", TODAY)
        ledger.register_payment(payable.id, "450")
        with pytest.raises(ValidationError, match="exceeds"):
            ledger.register_payment(payable.id, "50.01")
        assert ledger.get_payable(payable.id).amount_paid == Decimal("450")

    @pytest.mark.parametrize("amount", ["0", "-10", "abc", None])
    def test_non_positive_payment_rejected(self, ledger, amount):
        payable = ledger.create_payable("Tools", "500", TODAY)
        with pytest.raises(ValidationError):
            ledger.register_payment(payable.id, amount)

    def test_payment_history_matches_amount_paid(self, ledger):
        payable = ledger.create_payable("Tyres", "900", TODAY)
        ledger.register_payment(payable.id, "300", payment_date=TODAY, recorded_by=7)
        ledger.register_payment(payable.id, "200")
        payable = ledger.reverse_payment(payable.id, "100", recorded_by=7)

        payments = ledger.list_payments(payable.id)
        assert [p.amount for p in payments] == [Decimal("300"), Decimal("200"), Decimal("-100")]
        assert sum(p.amount for p in payments) == payable.amount_paid == Decimal("400")
        assert payments[0].payment_date == TODAY
        assert payments[0].recorded_by == 7
        assert payments[0].description == "Payment of payable: Tyres"
        _assert_consistent(payable)

    def test_reversal_reopens_paid_payable(self, ledger):
        payable = ledger.create_payable("Tyres", "900", TODAY)
        payable = ledger.register_payment(payable.id, "900")
        assert payable.status == PayableStatus.PAID

        payable = ledger.reverse_payment(payable.id, "100")
        assert payable.status == PayableStatus.OPEN
        assert payable.balance_due == Decimal("100")
        assert payable.paid_at is None
        _assert_consistent(payable)

    def test_reversal_without_audit_row(self, db_session):
        ledger = PayableLedgerService(db_session, record_reversals=False)
        payable = ledger.create_payable("Tyres", "900", TODAY)
        ledger.register_payment(payable.id, "500")
        payable = ledger.reverse_payment(payable.id, "200")
        assert payable.amount_paid == Decimal("300")
        assert [p.amount for p in ledger.list_payments(payable.id)] == [Decimal("500")]

    def test_unknown_payable(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.register_payment(12345, "10")
        with pytest.raises(NotFoundError):
            ledger.list_payments(12345)


class TestUpdatePayable:

    def test_raising_total_reopens_paid(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.register_payment(payable.id, "100")

        payable = ledger.update_payable(payable.id, {"total_amount_due": "150"})
        assert payable.status == PayableStatus.OPEN
        assert payable.balance_due == Decimal("50")
        assert payable.paid_at is None
        _assert_consistent(payable)

    def test_lowering_total_settles(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.register_payment(payable.id, "60")
        payable = ledger.update_payable(payable.id, {"total_amount_due": "60"})
        assert payable.status == PayableStatus.PAID
        assert payable.paid_at is not None
        _assert_consistent(payable)

    def test_overdue_kept_when_balance_remains(self, ledger, db_session):
        payable = ledger.create_payable("Paint", "100", YESTERDAY)
        ledger.mark_overdue(today=TODAY)
        payable = ledger.update_payable(payable.id, {"amount_paid": "30"})
        assert payable.status == PayableStatus.OVERDUE
        assert payable.balance_due == Decimal("70")

    def test_amount_paid_edit_records_adjustment(self, ledger):
        payable = ledger.create_payable("Tyres", "500", TODAY)
        ledger.register_payment(payable.id, "100")

        payable = ledger.update_payable(payable.id, {"amount_paid": "300"})
        payments = ledger.list_payments(payable.id)
        assert payable.amount_paid == Decimal("300")
        assert sum(p.amount for p in payments) == payable.amount_paid
        assert sorted(p.amount for p in payments) == [Decimal("100"), Decimal("200")]

        payable = ledger.update_payable(payable.id, {"amount_paid": "50"})
        payments = ledger.list_payments(payable.id)
        assert sum(p.amount for p in payments) == Decimal("50")
        assert Decimal("-250") in [p.amount for p in payments]

    def test_unchanged_amount_paid_adds_no_row(self, ledger):
        payable = ledger.create_payable("Tyres", "500", TODAY)
        ledger.update_payable(payable.id, {"amount_paid": "0", "description": "Tyres x4"})
        assert ledger.list_payments(payable.id) == []

    def test_explicit_status_must_match_balance(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        with pytest.raises(ValidationError):
            ledger.update_payable(payable.id, {"status": PayableStatus.PAID})
        assert ledger.get_payable(payable.id).status == PayableStatus.OPEN

    def test_plain_field_update_bumps_version(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        payable = ledger.update_payable(
            payable.id, {"description": "Paint, 20L", "due_date": "2026-04-01"}, expected_version=1
        )
        assert payable.description == "Paint, 20L"
        assert payable.due_date == date(2026, 4, 1)
        assert payable.version == 2

    def test_stale_version_conflict(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.register_payment(payable.id, "10")
        with pytest.raises(ConflictError):
            ledger.update_payable(payable.id, {"description": "late edit"}, expected_version=1)

    def test_rejects_unknown_and_invalid_fields(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        with pytest.raises(ValidationError):
            ledger.update_payable(payable.id, {"balance_due": "0"})
        with pytest.raises(ValidationError):
            ledger.update_payable(payable.id, {"total_amount_due": "0"})
        with pytest.raises(ValidationError):
            ledger.update_payable(payable.id, {"description": ""})


class TestDeletePayable:

    def test_delete_unpaid(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.delete_payable(payable.id)
        with pytest.raises(NotFoundError):
            ledger.get_payable(payable.id)

    def test_delete_with_payments_rejected(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.register_payment(payable.id, "10")
        with pytest.raises(ValidationError):
            ledger.delete_payable(payable.id)

    def test_delete_with_reversed_history_rejected(self, ledger):
        payable = ledger.create_payable("Paint", "100", TODAY)
        ledger.register_payment(payable.id, "10")
        ledger.reverse_payment(payable.id, "10")
        with pytest.raises(ValidationError, match="history"):
            ledger.delete_payable(payable.id)


class TestOverdueSweep:

    def test_only_open_past_due_records_change(self, ledger, db_session):
        past_open = ledger.create_payable("past open", "10", YESTERDAY)
        ledger.create_payable("due today", "10", TODAY)
        ledger.create_payable("future", "10", TODAY + timedelta(days=5))
        past_paid = ledger.create_payable("past paid", "10", YESTERDAY, amount_paid="10")

        assert ledger.mark_overdue(today=TODAY) == 1
        assert ledger.mark_overdue(today=TODAY) == 0

        statuses = {p.description: p.status for p in ledger.list_payables()}
        assert statuses == {
            "past open": PayableStatus.OVERDUE,
            "due today": PayableStatus.OPEN,
            "future": PayableStatus.OPEN,
            "past paid": PayableStatus.PAID,
        }
        assert ledger.get_payable(past_open.id).version == 2
        assert ledger.get_payable(past_paid.id).version == 1
        assert {p.id for p in ledger.list_overdue(today=TODAY)} == {past_open.id}


class TestSummaries:

    @pytest.fixture
    def book(self, ledger):
        ledger.create_payable("overdue", "100", TODAY - timedelta(days=3))
        ledger.create_payable("today", "200", TODAY)
        ledger.create_payable("tomorrow", "300", TODAY + timedelta(days=1))
        ledger.create_payable("in three days", "400", TODAY + timedelta(days=3))
        ledger.create_payable("next month", "500", TODAY + timedelta(days=30))
        half = ledger.create_payable("half paid", "600", TODAY + timedelta(days=2))
        ledger.register_payment(half.id, "300")
        ledger.create_payable("settled", "700", TODAY + timedelta(days=2), amount_paid="700")
        ledger.mark_overdue(today=TODAY)

    def test_summary_totals(self, ledger, book):
        summary = ledger.get_summary(today=TODAY)
        assert summary["count_open"] == 6
        assert summary["total_open"] == Decimal("1800.00")
        assert summary["count_overdue"] == 1
        assert summary["total_overdue"] == Decimal("100.00")
        assert summary["count_paid"] == 1
        assert summary["total_paid"] == Decimal("700.00")
        assert summary["total_general"] == Decimal("2500.00")
        assert summary["count_total"] == 7
        assert [p.description for p in summary["upcoming"]] == [
            "today", "tomorrow", "half paid", "in three days",
        ]

    def test_summary_window(self, ledger, book):
        summary = ledger.get_summary(due_from=TODAY, due_to=TODAY + timedelta(days=1), today=TODAY)
        assert summary["count_total"] == 2
        assert summary["total_open"] == Decimal("500.00")
        assert summary["count_overdue"] == 0

    def test_reminders(self, ledger, book):
        reminders = ledger.get_reminders(today=TODAY)
        names = {key: [p.description for p in value] for key, value in reminders.items()}
        assert names["due_today"] == ["today"]
        assert names["due_tomorrow"] == ["tomorrow"]
        assert names["due_within_3_days"] == ["today", "tomorrow", "half paid", "in three days"]
        assert names["overdue"] == ["overdue"]

    def test_list_filters(self, ledger, book, test_supplier):
        assert ledger.count_payables(status=PayableStatus.PAID) == 1
        assert len(ledger.list_payables(limit=2, offset=1)) == 2
        assert [p.description for p in ledger.list_due_within(1, today=TODAY)] == ["today", "tomorrow"]
        assert ledger.list_payables(supplier_id=test_supplier.id) == []
