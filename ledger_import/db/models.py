"""
ORM models for the financial records the bulk importer writes.

Every row belongs to one user (``user_id`` is the upstream identity string);
categories are unique per ``(user_id, name, type)``.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from ledger_import.db.session import Base


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class Category(Base):
    """Income or expense bucket; budget visibility is toggled by target imports."""
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("user_id", "name", "type", name="uq_categories_user_name_type"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String(16), nullable=False)  # INCOME | EXPENSE
    included_in_budget = Column(Boolean, nullable=False, default=True)
    color = Column(String(32), nullable=True)
    icon = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    holder_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    branch_name = Column(String, nullable=False)
    branch_code = Column(String, nullable=True)
    bank_address = Column(Text, nullable=True)
    account_type = Column(String, nullable=True)
    swift_code = Column(String, nullable=True)
    account_opening_date = Column(Date, nullable=True)
    mobile_numbers = Column(JSON, nullable=False, default=list)
    branch_contacts = Column(JSON, nullable=False, default=list)
    bank_email = Column(String, nullable=True)
    security_questions = Column(JSON, nullable=False, default=list)
    balance = Column(Float, nullable=False, default=0.0)
    app_username = Column(String, nullable=True)
    nickname = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class BudgetTarget(Base):
    """A spending/earning goal for a category; ``name`` is the natural key per user."""
    __tablename__ = "budget_targets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    period = Column(String(16), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False)
    date = Column(Date, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Income(Base):
    __tablename__ = "incomes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False)
    date = Column(Date, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Debt(Base):
    """Money lent to a borrower."""
    __tablename__ = "debts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    borrower_name = Column(String, nullable=False)
    borrower_contact = Column(String, nullable=True)
    borrower_email = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False, default=0.0)
    lent_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    status = Column(String(32), nullable=False, default="ACTIVE")
    purpose = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Investment(Base):
    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String(32), nullable=False)
    symbol = Column(String, nullable=True)
    quantity = Column(Float, nullable=False)
    purchase_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    purchase_date = Column(Date, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    interest_rate = Column(Float, nullable=True)
    maturity_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class PasswordEntry(Base):
    """
    Stored credential.

    ``secret`` and ``transaction_pin`` hold whatever the import supplied
    (plain text or an already-encrypted hash); encryption at rest is the
    caller's concern.
    """
    __tablename__ = "password_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    website_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    username = Column(String, nullable=False)
    secret = Column(Text, nullable=False)
    transaction_pin = Column(Text, nullable=True)
    validity = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class DebtRepayment(Base):
    __tablename__ = "debt_repayments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    debt_id = Column(Integer, ForeignKey("debts.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    repayment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class InvestmentTarget(Base):
    """Savings goal per investment type; ``investment_type`` is the natural key per user."""
    __tablename__ = "investment_targets"
    __table_args__ = (UniqueConstraint("user_id", "investment_type", name="uq_investment_targets_user_type"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    investment_type = Column(String(32), nullable=False)
    target_amount = Column(Float, nullable=False)
    target_completion_date = Column(Date, nullable=False)
    nickname = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    color = Column(String(32), nullable=False, default="#fbbf24")
    tags = Column(JSON, nullable=False, default=list)
    reminder_date = Column(DateTime(timezone=True), nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
