"""
Per-entity persisters.

A persister writes one ``ValidatedRecord`` through the session of the
current transaction and returns the new row id. It never commits; the batch
importer owns transaction boundaries.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledger_import.db.models import (
    Account,
    BudgetTarget,
    Category,
    Debt,
    DebtRepayment,
    Expense,
    Income,
    Investment,
    InvestmentTarget,
    Note,
    PasswordEntry,
)
from ledger_import.domain.imports.errors import UnknownEntityError
from ledger_import.domain.imports.references import CategoryEntry, CategoryRef, find_stored_category
from ledger_import.domain.imports.row_validator import ValidatedRecord

logger = logging.getLogger(__name__)


@dataclass
class PersistContext:
    """State shared by the persisters of one transaction."""
    session: Session
    user_id: str
    created_categories: List[CategoryEntry] = field(default_factory=list)
    _category_cache: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def ensure_category(self, name: str, category_type: str, included_in_budget: bool = True) -> int:
        """
        Return the id of the user's category, creating it inside this transaction if needed.

        Created categories are recorded in ``created_categories`` so the caller
        can publish them once the transaction commits.
        """
        key = (name.strip().lower(), category_type)
        if key in self._category_cache:
            return self._category_cache[key]

        category = find_stored_category(self.session, self.user_id, name, category_type)
        if category is None:
            category = Category(
                user_id=self.user_id,
                name=name.strip(),
                type=category_type,
                included_in_budget=included_in_budget,
            )
            self.session.add(category)
            self.session.flush()
            self.created_categories.append(
                CategoryEntry(id=category.id, name=category.name, type=category.type, included_in_budget=included_in_budget)
            )
            logger.info("Created %s category '%s' for user %s", category_type, category.name, self.user_id)
        elif included_in_budget and not category.included_in_budget:
            category.included_in_budget = True

        self._category_cache[key] = category.id
        return category.id

    def category_id(self, ref: CategoryRef, include_in_budget: bool = False) -> int:
        if ref.id is not None and not include_in_budget:
            return ref.id
        return self.ensure_category(ref.name, ref.type, included_in_budget=True)


def persist_budget_target(ctx: PersistContext, record: ValidatedRecord) -> int:
    """Natural-key upsert: any stored target with the same name is replaced."""
    values = record.values
    ref: CategoryRef = values["category_name"]
    category_id = ctx.category_id(ref, include_in_budget=True)

    removed = (
        ctx.session.query(BudgetTarget)
        .filter(BudgetTarget.user_id == ctx.user_id, BudgetTarget.name == ref.name)
        .delete(synchronize_session=False)
    )
    if removed:
        logger.debug("Replaced %d existing budget target(s) named '%s'", removed, ref.name)

    target = BudgetTarget(
        user_id=ctx.user_id,
        name=ref.name,
        category_id=category_id,
        target_amount=values["target_amount"],
        current_amount=0.0,
        period=values["period"],
        start_date=values["start_date"],
        end_date=values["end_date"],
        is_active=True,
    )
    ctx.session.add(target)
    ctx.session.flush()
    return target.id


def _transaction_columns(ctx: PersistContext, values: Dict) -> Dict:
    return {
        "user_id": ctx.user_id,
        "title": values["title"],
        "description": values.get("description"),
        "amount": values["amount"],
        "date": values["date"],
        "category_id": ctx.category_id(values["category"]),
        "account_id": values.get("account"),
        "tags": values.get("tags") or [],
        "notes": values.get("notes"),
        "is_recurring": bool(values.get("recurring")),
        "recurring_frequency": values.get("frequency"),
    }


def persist_expense(ctx: PersistContext, record: ValidatedRecord) -> int:
    expense = Expense(location=record.values.get("location"), **_transaction_columns(ctx, record.values))
    ctx.session.add(expense)
    ctx.session.flush()
    return expense.id


def persist_income(ctx: PersistContext, record: ValidatedRecord) -> int:
    income = Income(**_transaction_columns(ctx, record.values))
    ctx.session.add(income)
    ctx.session.flush()
    return income.id


def persist_debt(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    debt = Debt(
        user_id=ctx.user_id,
        borrower_name=values["borrower_name"],
        borrower_contact=values.get("borrower_contact"),
        borrower_email=values.get("borrower_email"),
        amount=values["amount"],
        interest_rate=values["interest_rate"],
        lent_date=values["lent_date"],
        due_date=values.get("due_date"),
        status=values.get("status") or "ACTIVE",
        purpose=values.get("purpose"),
        notes=values.get("notes"),
        account_id=values.get("account"),
    )
    ctx.session.add(debt)
    ctx.session.flush()
    return debt.id


def persist_investment(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    investment = Investment(
        user_id=ctx.user_id,
        name=values["name"],
        type=values["type"],
        symbol=values.get("symbol"),
        quantity=values["quantity"],
        purchase_price=values["purchase_price"],
        current_price=values["current_price"],
        purchase_date=values["purchase_date"],
        account_id=values["account"],
        interest_rate=values.get("interest_rate"),
        maturity_date=values.get("maturity_date"),
        notes=values.get("notes"),
    )
    ctx.session.add(investment)
    ctx.session.flush()
    return investment.id


def persist_account(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    account = Account(
        user_id=ctx.user_id,
        holder_name=values["holder_name"],
        account_number=values["account_number"],
        bank_name=values["bank_name"],
        branch_name=values["branch_name"],
        branch_code=values.get("branch_code"),
        bank_address=values.get("bank_address"),
        account_type=values.get("account_type"),
        swift_code=values.get("swift_code"),
        account_opening_date=values.get("account_opening_date"),
        mobile_numbers=values.get("mobile_numbers") or [],
        branch_contacts=values.get("branch_contacts") or [],
        bank_email=values.get("bank_email"),
        security_questions=values.get("security_questions") or [],
        balance=values.get("balance") or 0.0,
        app_username=values.get("app_username"),
        notes=values.get("notes"),
        nickname=values.get("nickname"),
    )
    ctx.session.add(account)
    ctx.session.flush()
    return account.id


def persist_password(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    entry = PasswordEntry(
        user_id=ctx.user_id,
        website_name=values["website_name"],
        description=values.get("description"),
        username=values["username"],
        secret=values["password"],
        transaction_pin=values.get("transaction_pin"),
        validity=values.get("validity"),
        notes=values.get("notes"),
        category=values.get("category"),
        tags=values.get("tags") or [],
    )
    ctx.session.add(entry)
    ctx.session.flush()
    return entry.id


def persist_category(ctx: PersistContext, record: ValidatedRecord) -> int:
    """Natural-key upsert on (name, type): an existing category keeps its id and takes the new color and icon."""
    values = record.values
    category = find_stored_category(ctx.session, ctx.user_id, values["name"], values["type"])
    if category is not None:
        category.color = values.get("color")
        category.icon = values.get("icon")
        ctx.session.flush()
        logger.debug("Updated %s category '%s' for user %s", category.type, category.name, ctx.user_id)
        return category.id

    category_id = ctx.ensure_category(values["name"], values["type"])
    category = ctx.session.get(Category, category_id)
    category.color = values.get("color")
    category.icon = values.get("icon")
    ctx.session.flush()
    return category_id


def persist_investment_target(ctx: PersistContext, record: ValidatedRecord) -> int:
    """Natural-key upsert: the stored goal for the same investment type is replaced."""
    values = record.values
    removed = (
        ctx.session.query(InvestmentTarget)
        .filter(
            InvestmentTarget.user_id == ctx.user_id,
            InvestmentTarget.investment_type == values["investment_type"],
        )
        .delete(synchronize_session=False)
    )
    if removed:
        logger.debug("Replaced existing %s investment target", values["investment_type"])

    target = InvestmentTarget(
        user_id=ctx.user_id,
        investment_type=values["investment_type"],
        target_amount=values["target_amount"],
        target_completion_date=values["target_completion_date"],
        nickname=values.get("nickname"),
    )
    ctx.session.add(target)
    ctx.session.flush()
    return target.id


def total_due_with_interest(
    amount: float,
    interest_rate: float,
    lent_date: date,
    due_date: Optional[date] = None,
    today: Optional[date] = None,
) -> float:
    """
    Principal plus simple annual interest.

    Interest runs over the longer of lent-date-to-today and
    lent-date-to-due-date, counted in whole days over a 365-day year.
    """
    if not interest_rate:
        return amount
    today = today or date.today()
    end = due_date or today
    days = max((today - lent_date).days, (end - lent_date).days, 0)
    return amount + amount * (interest_rate / 100) * (days / 365)


def next_debt_status(total_repaid: float, total_due: float, current: str) -> str:
    """Status of a debt after a repayment; only ACTIVE debts move to PARTIALLY_PAID."""
    if total_repaid >= total_due - 0.01:
        return "FULLY_PAID"
    if total_repaid > 0 and current == "ACTIVE":
        return "PARTIALLY_PAID"
    return current


def persist_debt_repayment(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    debt = ctx.session.get(Debt, values["debt_id"])
    if debt is None or debt.user_id != ctx.user_id:
        # Deleted between validation and persistence.
        raise ValueError(f"Debt ID {values['debt_id']} not found or does not belong to current user")

    repayment = DebtRepayment(
        user_id=ctx.user_id,
        debt_id=debt.id,
        amount=values["amount"],
        repayment_date=values["repayment_date"],
        notes=values.get("notes"),
    )
    ctx.session.add(repayment)
    ctx.session.flush()

    total_repaid = (
        ctx.session.query(func.coalesce(func.sum(DebtRepayment.amount), 0.0))
        .filter(DebtRepayment.debt_id == debt.id)
        .scalar()
    )
    total_due = total_due_with_interest(debt.amount, debt.interest_rate or 0.0, debt.lent_date, debt.due_date)
    status = next_debt_status(float(total_repaid), total_due, debt.status)
    if status != debt.status:
        logger.info("Debt %s moved from %s to %s after repayment", debt.id, debt.status, status)
        debt.status = status
        ctx.session.flush()
    return repayment.id


def persist_note(ctx: PersistContext, record: ValidatedRecord) -> int:
    values = record.values
    note = Note(
        user_id=ctx.user_id,
        title=values["title"],
        content=values.get("content"),
        color=values.get("color") or "#fbbf24",
        tags=values.get("tags") or [],
        reminder_date=values.get("reminder_date"),
        is_pinned=bool(values.get("is_pinned")),
        is_archived=bool(values.get("is_archived")),
    )
    ctx.session.add(note)
    ctx.session.flush()
    return note.id


Persister = Callable[[PersistContext, ValidatedRecord], int]

PERSISTERS: Dict[str, Persister] = {
    "budget_target": persist_budget_target,
    "expense": persist_expense,
    "income": persist_income,
    "debt": persist_debt,
    "investment": persist_investment,
    "account": persist_account,
    "password": persist_password,
    "category": persist_category,
    "investment_target": persist_investment_target,
    "debt_repayment": persist_debt_repayment,
    "note": persist_note,
}


def get_persister(entity_kind: str) -> Persister:
    persister = PERSISTERS.get(entity_kind)
    if persister is None:
        raise UnknownEntityError(entity_kind, f"No persister registered for '{entity_kind}'")
    return persister
