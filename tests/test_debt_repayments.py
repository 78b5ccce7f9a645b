"""
Debt repayment imports: debt id resolution, id mapping from debt runs and
status updates after each repayment.
"""
from datetime import date

import pytest

from ledger_import.db.models import Debt, DebtRepayment
from ledger_import.domain.imports.orchestrator import run_import
from ledger_import.domain.imports.persisters import next_debt_status, total_due_with_interest

USER_ID = "user-1"

REPAYMENT_HEADER = "Debt ID,Amount,Repayment Date,Notes"


@pytest.fixture
def debts(session_factory, seeded):
    with session_factory() as session:
        with session.begin():
            interest_free = Debt(user_id=USER_ID, borrower_name="Jane", amount=1000.0, interest_rate=0.0,
                                 lent_date=date(2025, 1, 1))
            overdue = Debt(user_id=USER_ID, borrower_name="Raj", amount=400.0, interest_rate=0.0,
                           lent_date=date(2025, 1, 1), status="OVERDUE")
            foreign = Debt(user_id="someone-else", borrower_name="Eve", amount=50.0, interest_rate=0.0,
                           lent_date=date(2025, 1, 1))
            session.add_all([interest_free, overdue, foreign])
            session.flush()
            return {"jane": interest_free.id, "raj": overdue.id, "foreign": foreign.id}


def _status(session_factory, debt_id):
    with session_factory() as session:
        return session.get(Debt, debt_id).status


class TestRepaymentImport:
    def test_partial_repayment_marks_active_debt(self, session_factory, debts):
        run = run_import(f"{REPAYMENT_HEADER}\n{debts['jane']},250,2025-02-01,First", "debt_repayment", USER_ID, session_factory)

        assert run.imported_count == 1
        assert _status(session_factory, debts["jane"]) == "PARTIALLY_PAID"
        with session_factory() as session:
            repayment = session.query(DebtRepayment).one()
            assert repayment.amount == 250.0
            assert repayment.notes == "First"

    def test_repayments_summing_to_total_settle_the_debt(self, session_factory, debts):
        text = f"{REPAYMENT_HEADER}\n{debts['jane']},600,2025-02-01,\n{debts['jane']},400,2025-03-01,\n"
        run = run_import(text, "debt_repayment", USER_ID, session_factory)

        assert run.imported_count == 2
        assert _status(session_factory, debts["jane"]) == "FULLY_PAID"

    def test_partial_repayment_keeps_overdue_status(self, session_factory, debts):
        run_import(f"{REPAYMENT_HEADER}\n{debts['raj']},100,2025-02-01,", "debt_repayment", USER_ID, session_factory)
        assert _status(session_factory, debts["raj"]) == "OVERDUE"

    def test_unknown_and_foreign_debts_rejected(self, session_factory, debts):
        text = f"{REPAYMENT_HEADER}\n9999,10,2025-02-01,\n{debts['foreign']},10,2025-02-01,\n"
        result = run_import(text, "debt_repayment", USER_ID, session_factory).result()

        assert result.imported_count == 0
        assert [error.error for error in result.errors] == [
            "Debt ID 9999 not found or does not belong to current user",
            f"Debt ID {debts['foreign']} not found or does not belong to current user",
        ]

    @pytest.mark.parametrize("cell", ["abc", "0", "-3", "1.5"])
    def test_malformed_debt_id(self, session_factory, debts, cell):
        result = run_import(f"{REPAYMENT_HEADER}\n{cell},10,2025-02-01,", "debt_repayment", USER_ID, session_factory).result()
        assert result.errors[0].error == f"Invalid debt ID value ({cell}). Must be a positive number."

    def test_non_positive_amount_rejected(self, session_factory, debts):
        result = run_import(f"{REPAYMENT_HEADER}\n{debts['jane']},0,2025-02-01,", "debt_repayment", USER_ID, session_factory).result()
        assert result.errors[0].field_errors[0].field == "amount"


class TestDebtIdMapping:
    DEBT_TEXT = (
        "ID,Borrower Name,Amount,Interest Rate (%),Lent Date\n"
        "101,Asha,300,0,2025-01-01\n"
        "102,Ben,200,0,2025-01-05\n"
    )

    def test_debt_run_maps_source_ids(self, session_factory, seeded):
        run = run_import(self.DEBT_TEXT, "debt", USER_ID, session_factory)
        assert sorted(run.id_mapping) == [101, 102]
        assert sorted(run.id_mapping.values()) == sorted(run.imported_ids)

    def test_repayments_follow_the_mapping(self, session_factory, seeded):
        debt_run = run_import(self.DEBT_TEXT, "debt", USER_ID, session_factory)
        text = f"{REPAYMENT_HEADER}\n102,200,2025-02-01,\n101,50,2025-02-01,\n"
        run = run_import(text, "debt_repayment", USER_ID, session_factory, debt_id_mapping=debt_run.id_mapping)

        assert run.imported_count == 2
        assert _status(session_factory, debt_run.id_mapping[102]) == "FULLY_PAID"
        assert _status(session_factory, debt_run.id_mapping[101]) == "PARTIALLY_PAID"

    def test_corrected_debt_row_joins_the_mapping(self, session_factory, seeded):
        text = "ID,Borrower Name,Amount,Interest Rate (%),Lent Date\n5,Asha,300,0,someday\n"
        run = run_import(text, "debt", USER_ID, session_factory)
        assert run.id_mapping == {}

        run.corrections.begin_edit(2)
        run.corrections.edit_field(2, "lent_date", "2025-01-01")
        outcome = run.corrections.submit(2)

        assert outcome.success
        assert run.id_mapping == {5: outcome.record_id}


class TestDebtStatus:
    def test_interest_free_total_is_the_principal(self):
        assert total_due_with_interest(500.0, 0.0, date(2024, 1, 1)) == 500.0

    def test_simple_interest_over_a_year(self):
        assert total_due_with_interest(1000.0, 10.0, date(2024, 1, 1), today=date(2024, 12, 31)) == pytest.approx(1100.0)

    def test_interest_runs_to_the_later_of_today_and_due_date(self):
        due_later = total_due_with_interest(1000.0, 10.0, date(2024, 1, 1), date(2025, 12, 31), today=date(2024, 12, 31))
        assert due_later == pytest.approx(1000.0 + 100.0 * 730 / 365)

    @pytest.mark.parametrize("repaid, current, expected", [
        (1000.0, "ACTIVE", "FULLY_PAID"),
        (999.995, "OVERDUE", "FULLY_PAID"),
        (10.0, "ACTIVE", "PARTIALLY_PAID"),
        (10.0, "OVERDUE", "OVERDUE"),
        (0.0, "ACTIVE", "ACTIVE"),
    ])
    def test_next_status(self, repaid, current, expected):
        assert next_debt_status(repaid, 1000.0, current) == expected
