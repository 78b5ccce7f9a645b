"""
Imports of categories, investment targets and notes, and the combined
categories-then-transactions upload.
"""
from datetime import date, datetime

import pytest

from ledger_import.db.models import Category, Expense, InvestmentTarget, Note
from ledger_import.domain.imports.orchestrator import run_import, run_import_with_categories

USER_ID = "user-1"


def _categories(session_factory):
    with session_factory() as session:
        return {
            (c.name, c.type): (c.id, c.color, c.icon)
            for c in session.query(Category).filter(Category.user_id == USER_ID)
        }


class TestCategoryImport:
    def test_new_categories_created_with_color_and_icon(self, session_factory, seeded):
        text = "Name,Type,Color,Icon\nTravel,expense,#0EA5E9,plane\nBonus,Income,teal,\n"
        run = run_import(text, "category", USER_ID, session_factory)

        assert run.imported_count == 2
        stored = _categories(session_factory)
        assert stored[("Travel", "EXPENSE")][1:] == ("#0EA5E9", "plane")
        assert stored[("Bonus", "INCOME")][1:] == ("teal", None)

    def test_unrecognised_color_falls_back_to_default(self, session_factory, seeded):
        run_import("Name,Type,Color\nTravel,EXPENSE,sparkly\n", "category", USER_ID, session_factory)
        assert _categories(session_factory)[("Travel", "EXPENSE")][1] == "#6B7280"

    def test_existing_category_is_updated_in_place(self, session_factory, seeded):
        run = run_import("Name,Type,Color\nfood,EXPENSE,#FF0000\n", "category", USER_ID, session_factory)

        stored = _categories(session_factory)
        assert run.imported_ids == [seeded["food"]]
        assert stored[("Food", "EXPENSE")] == (seeded["food"], "#FF0000", None)
        assert len(stored) == 3

    def test_same_name_with_other_type_is_a_new_category(self, session_factory, seeded):
        run_import("Name,Type\nFood,INCOME\n", "category", USER_ID, session_factory)
        assert ("Food", "INCOME") in _categories(session_factory)

    def test_duplicate_rows_in_one_file_rejected(self, session_factory, seeded):
        text = "Name,Type\nTravel,EXPENSE\n travel ,expense\nTravel,INCOME\n"
        result = run_import(text, "category", USER_ID, session_factory).result()

        assert result.imported_count == 2
        assert result.skipped_count == 1
        assert result.errors[0].row == 3
        assert result.errors[0].error == "Duplicate name 'travel', type 'EXPENSE' already exists in this import (row 2)"

    def test_missing_type_rejected(self, session_factory, seeded):
        result = run_import("Name,Type\nTravel,\n", "category", USER_ID, session_factory).result()
        assert result.errors[0].error == "Type is required"


class TestInvestmentTargetImport:
    HEADER = "Investment Type,Target Amount,Target Completion Date,Nickname"

    def _targets(self, session_factory):
        with session_factory() as session:
            return {
                t.investment_type: (t.target_amount, t.target_completion_date, t.nickname)
                for t in session.query(InvestmentTarget).filter(InvestmentTarget.user_id == USER_ID)
            }

    def test_aliases_and_dates(self, session_factory, seeded):
        text = f"{self.HEADER}\nwedding,200000,2027-05-01,Big day\nPF,50000,12/31/2030,\n"
        run_import(text, "investment_target", USER_ID, session_factory)

        assert self._targets(session_factory) == {
            "MARRIAGE": (200000.0, date(2027, 5, 1), "Big day"),
            "PROVIDENT_FUNDS": (50000.0, date(2030, 12, 31), None),
        }

    def test_reimport_replaces_goal_of_same_type(self, session_factory, seeded):
        run_import(f"{self.HEADER}\nGOLD,100,2030-01-01,", "investment_target", USER_ID, session_factory)
        run_import(f"{self.HEADER}\nprecious metals,250,2031-01-01,Coins", "investment_target", USER_ID, session_factory)
        assert self._targets(session_factory) == {"GOLD": (250.0, date(2031, 1, 1), "Coins")}

    def test_duplicate_type_in_one_file_rejected(self, session_factory, seeded):
        text = f"{self.HEADER}\nSTOCKS,100,2030-01-01,\nequity,200,2030-01-01,\n"
        result = run_import(text, "investment_target", USER_ID, session_factory).result()
        assert result.imported_count == 1
        assert result.errors[0].field_errors[0].field == "investment_type"

    def test_non_positive_amount(self, session_factory, seeded):
        result = run_import(f"{self.HEADER}\nGOLD,0,2030-01-01,", "investment_target", USER_ID, session_factory).result()
        assert result.errors[0].error == "Target amount must be a positive number"


class TestNoteImport:
    def test_defaults_and_lists(self, session_factory, seeded):
        text = "Title,Content,Tags\nGroceries,Milk and eggs,home;weekly\n"
        run_import(text, "note", USER_ID, session_factory)

        with session_factory() as session:
            note = session.query(Note).one()
            assert note.color == "#fbbf24"
            assert note.tags == ["home", "weekly"]
            assert note.is_pinned is False
            assert note.is_archived is False
            assert note.reminder_date is None

    def test_reminder_and_flags(self, session_factory, seeded):
        text = "Note Title,Reminder,Pinned,Archived,Colour\nTaxes,2025-03-01T09:00:00Z,yes,no,#abc\n"
        run_import(text, "note", USER_ID, session_factory)

        with session_factory() as session:
            note = session.query(Note).one()
            assert note.title == "Taxes"
            assert note.reminder_date.replace(tzinfo=None) == datetime(2025, 3, 1, 9, 0)
            assert note.is_pinned is True
            assert note.color == "#abc"

    def test_bad_reminder_is_a_row_error(self, session_factory, seeded):
        result = run_import("Title,Reminder Date\nTaxes,next week\n", "note", USER_ID, session_factory).result()
        assert result.errors[0].field_errors[0].field == "reminder_date"
        assert "Invalid date format" in result.errors[0].error


class TestCombinedImport:
    EXPENSES = "Title,Amount,Date,Category\nFlight,300,2025-01-02,Travel\nLunch,12,2025-01-02,Food\n"

    def test_categories_imported_before_transactions(self, session_factory, seeded):
        category_run, run = run_import_with_categories(
            "Name,Type\nTravel,EXPENSE\n", self.EXPENSES, "expense", USER_ID, session_factory
        )

        assert category_run.entity == "category"
        assert category_run.imported_count == 1
        assert run.imported_count == 2
        with session_factory() as session:
            assert session.query(Expense).count() == 2

    def test_without_categories_file_the_row_fails(self, session_factory, seeded):
        run = run_import(self.EXPENSES, "expense", USER_ID, session_factory)
        assert run.imported_count == 1
        assert "Category not found (Travel)" in run.result().errors[0].error

    def test_broken_categories_file_does_not_block_transactions(self, session_factory, seeded):
        category_run, run = run_import_with_categories("", self.EXPENSES, "expense", USER_ID, session_factory)
        assert category_run.structural_error == "CSV file is empty"
        assert run.imported_count == 1

    def test_entity_without_category_column_rejected(self, session_factory, seeded):
        with pytest.raises(ValueError):
            run_import_with_categories("Name,Type\nX,EXPENSE\n", "Title\nx\n", "password", USER_ID, session_factory)
