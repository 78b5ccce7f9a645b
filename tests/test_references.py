"""
Tests for category/account reference resolution and budget reconciliation.
"""

from datetime import date

from ledger_import.db.models import Category, Debt
from ledger_import.domain.imports.references import (
    AccountEntry,
    CategoryEntry,
    ReferenceIndex,
    build_reference_index,
    find_stored_category,
    keys_to_hide,
    reconcile_after_import,
    resolve_account,
)

USER_ID = "user-1"


ACCOUNTS = [
    AccountEntry(id=1, holder_name="John Doe", bank_name="Chase", account_number="1234567890"),
    AccountEntry(id=2, holder_name="John Doe", bank_name="HDFC Bank", account_number="5550001111"),
    AccountEntry(id=3, holder_name="Jane Roe", bank_name="Chase Savings", account_number="42"),
]


class TestResolveAccount:
    def test_exact_display_name_wins(self):
        assert resolve_account("John Doe - HDFC Bank", ACCOUNTS) == 2
        assert resolve_account("jane roe - chase savings", ACCOUNTS) == 3

    def test_partial_holder_or_bank(self):
        assert resolve_account("HDFC", ACCOUNTS) == 2
        assert resolve_account("Jane", ACCOUNTS) == 3

    def test_first_partial_match_in_order(self):
        assert resolve_account("Chase", ACCOUNTS) == 1

    def test_account_number(self):
        assert resolve_account("5550001111", ACCOUNTS) == 2
        assert resolve_account("42", ACCOUNTS) == 3

    def test_no_match(self):
        assert resolve_account("Barclays", ACCOUNTS) is None
        assert resolve_account("   ", ACCOUNTS) is None


class TestReferenceIndex:
    def test_category_lookup_is_case_insensitive_and_typed(self):
        index = ReferenceIndex([CategoryEntry(id=1, name="Food", type="EXPENSE")])
        assert index.find_category("  FOOD ", "EXPENSE").id == 1
        assert index.find_category("Food", "INCOME") is None

    def test_same_name_different_types(self):
        index = ReferenceIndex([
            CategoryEntry(id=1, name="Bonus", type="EXPENSE"),
            CategoryEntry(id=2, name="Bonus", type="INCOME"),
        ])
        assert index.find_category("bonus", "INCOME").id == 2

    def test_add_category_publishes_entry(self):
        index = ReferenceIndex()
        index.add_category(CategoryEntry(id=9, name="Travel", type="EXPENSE"))
        assert index.find_category("travel", "EXPENSE").id == 9
        assert len(index.categories) == 1

    def test_built_from_store_only_sees_own_accounts(self, reference_index, seeded):
        account_ids = {account.id for account in reference_index.accounts}
        assert seeded["foreign"] not in account_ids
        assert reference_index.resolve_account("Evil Bank") is None
        assert reference_index.resolve_account("John Doe - Chase") == seeded["chase"]

    def test_debts_resolve_by_own_id_or_mapping(self, session_factory, seeded):
        with session_factory() as session:
            with session.begin():
                mine = Debt(user_id=USER_ID, borrower_name="Jane", amount=10.0, lent_date=date(2025, 1, 1))
                theirs = Debt(user_id="someone-else", borrower_name="Eve", amount=10.0, lent_date=date(2025, 1, 1))
                session.add_all([mine, theirs])
                session.flush()
                mine_id, theirs_id = mine.id, theirs.id

        with session_factory() as session:
            index = build_reference_index(session, USER_ID, debt_id_mapping={500: mine_id})
        assert index.resolve_debt(mine_id) == mine_id
        assert index.resolve_debt(500) == mine_id
        assert index.resolve_debt(theirs_id) is None


class TestKeysToHide:
    def test_names_absent_from_import_are_hidden(self):
        existing = [
            CategoryEntry(id=1, name="Food", type="EXPENSE"),
            CategoryEntry(id=2, name="Rent", type="EXPENSE"),
            CategoryEntry(id=3, name="Salary", type="INCOME"),
        ]
        hidden = keys_to_hide(["food", "SALARY"], existing)
        assert [entry.id for entry in hidden] == [2]

    def test_already_hidden_categories_skipped(self):
        existing = [CategoryEntry(id=1, name="Old", type="EXPENSE", included_in_budget=False)]
        assert keys_to_hide([], existing) == []


class TestReconcile:
    def test_hides_unlisted_categories_without_deleting(self, session_factory, seeded):
        with session_factory() as session:
            with session.begin():
                hidden = reconcile_after_import(session, USER_ID, ["Food"])
        assert hidden == 2

        with session_factory() as session:
            rows = {c.name: c.included_in_budget for c in session.query(Category).filter(Category.user_id == USER_ID)}
        assert rows == {"Food": True, "Rent": False, "Salary": False}

    def test_second_run_is_a_no_op(self, session_factory, seeded):
        with session_factory() as session:
            with session.begin():
                reconcile_after_import(session, USER_ID, ["Food"])
            with session.begin():
                assert reconcile_after_import(session, USER_ID, ["Food"]) == 0

    def test_find_stored_category_ignores_case(self, session_factory, seeded):
        with session_factory() as session:
            category = find_stored_category(session, USER_ID, "rent", "EXPENSE")
            assert category is not None
            assert category.id == seeded["rent"]
            assert find_stored_category(session, USER_ID, "rent", "INCOME") is None
