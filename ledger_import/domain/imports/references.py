"""
Reference resolution for imported rows.

Rows name their category and account by text and their debt by id. The
``ReferenceIndex`` is a per-run snapshot of the acting user's categories,
accounts and debt ids, built once
from caller-supplied collections and consulted by the row validator. It only
grows when the batch importer publishes categories created by a committed
transaction.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledger_import.db.models import Account, Category, Debt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryEntry:
    id: int
    name: str
    type: str
    included_in_budget: bool = True


@dataclass(frozen=True)
class AccountEntry:
    id: int
    holder_name: str
    bank_name: str
    account_number: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.holder_name} - {self.bank_name}"


@dataclass(frozen=True)
class CategoryRef:
    """A category named by a row; ``id`` is None until the category exists."""
    name: str
    type: str
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "type": self.type, "id": self.id}


def _category_key(name: str, category_type: str) -> Tuple[str, str]:
    return (name or "").strip().lower(), (category_type or "").upper()


def resolve_account(display_name: str, candidates: Sequence[AccountEntry]) -> Optional[int]:
    """
    Find the account a row refers to.

    Priority:
        1. exact ``"<holder> - <bank>"`` display string (case-insensitive)
        2. value contained in the holder or bank name
        3. value equal to the account number

    Returns:
        Account id or None when nothing matches
    """
    value = (display_name or "").strip()
    if not value:
        return None
    lowered = value.lower()

    for account in candidates:
        if account.display_name.lower() == lowered:
            return account.id

    for account in candidates:
        if lowered in account.holder_name.lower() or lowered in account.bank_name.lower():
            return account.id

    for account in candidates:
        if account.account_number and account.account_number.strip() == value:
            return account.id

    return None


class ReferenceIndex:
    """
    Lookup snapshot of one user's categories, accounts and debts.

    ``debt_id_mapping`` translates debt ids of an earlier debt file (its ID
    column) to the ids the store assigned; unmapped ids are taken as stored ids.
    """

    def __init__(
        self,
        categories: Iterable[CategoryEntry] = (),
        accounts: Iterable[AccountEntry] = (),
        debt_ids: Iterable[int] = (),
        debt_id_mapping: Optional[Mapping[int, int]] = None,
    ):
        self._categories: Dict[Tuple[str, str], CategoryEntry] = {}
        for entry in categories:
            self._categories[_category_key(entry.name, entry.type)] = entry
        self._accounts: List[AccountEntry] = list(accounts)
        self._debt_ids: Set[int] = set(debt_ids)
        self._debt_id_mapping: Dict[int, int] = dict(debt_id_mapping or {})

    @property
    def categories(self) -> List[CategoryEntry]:
        return list(self._categories.values())

    @property
    def accounts(self) -> List[AccountEntry]:
        return list(self._accounts)

    def find_category(self, name: str, category_type: str) -> Optional[CategoryEntry]:
        return self._categories.get(_category_key(name, category_type))

    def resolve_account(self, display_name: str) -> Optional[int]:
        return resolve_account(display_name, self._accounts)

    def resolve_debt(self, debt_id: int) -> Optional[int]:
        """Stored id of the debt a row refers to, or None if the user has no such debt."""
        resolved = self._debt_id_mapping.get(debt_id, debt_id)
        return resolved if resolved in self._debt_ids else None

    def add_category(self, entry: CategoryEntry) -> None:
        """Publish a category created by a committed transaction."""
        self._categories[_category_key(entry.name, entry.type)] = entry


def load_reference_collections(session: Session, user_id: str) -> Tuple[List[CategoryEntry], List[AccountEntry]]:
    """Read the user's categories and accounts from the store."""
    categories = [
        CategoryEntry(id=c.id, name=c.name, type=c.type, included_in_budget=bool(c.included_in_budget))
        for c in session.query(Category).filter(Category.user_id == user_id).order_by(Category.id)
    ]
    accounts = [
        AccountEntry(id=a.id, holder_name=a.holder_name, bank_name=a.bank_name, account_number=a.account_number or "")
        for a in session.query(Account).filter(Account.user_id == user_id).order_by(Account.id)
    ]
    return categories, accounts


def load_debt_ids(session: Session, user_id: str) -> List[int]:
    return [row.id for row in session.query(Debt.id).filter(Debt.user_id == user_id).order_by(Debt.id)]


def build_reference_index(
    session: Session,
    user_id: str,
    debt_id_mapping: Optional[Mapping[int, int]] = None,
) -> ReferenceIndex:
    categories, accounts = load_reference_collections(session, user_id)
    return ReferenceIndex(categories, accounts, load_debt_ids(session, user_id), debt_id_mapping)


def find_stored_category(session: Session, user_id: str, name: str, category_type: str) -> Optional[Category]:
    return (
        session.query(Category)
        .filter(
            Category.user_id == user_id,
            func.lower(Category.name) == name.strip().lower(),
            Category.type == category_type,
        )
        .first()
    )


def keys_to_hide(imported_names: Iterable[str], existing: Iterable[CategoryEntry]) -> List[CategoryEntry]:
    """
    Pick the categories a budget import should hide.

    A category stays visible iff its name appeared among the imported natural
    keys (case-insensitive, any type). Categories already hidden are skipped.
    """
    imported: Set[str] = {(name or "").strip().lower() for name in imported_names}
    return [
        entry for entry in existing
        if entry.included_in_budget and entry.name.strip().lower() not in imported
    ]


def reconcile_after_import(session: Session, user_id: str, imported_names: Iterable[str]) -> int:
    """
    Hide budget categories that the import did not mention.

    Only flips ``included_in_budget``; nothing is deleted. Runs inside the
    caller's transaction.

    Returns:
        Number of categories hidden
    """
    categories, _ = load_reference_collections(session, user_id)
    hidden = keys_to_hide(imported_names, categories)
    if not hidden:
        return 0

    session.query(Category).filter(Category.id.in_([entry.id for entry in hidden])).update(
        {Category.included_in_budget: False}, synchronize_session=False
    )
    logger.info(
        "Hid %d budget categor%s not present in import for user %s",
        len(hidden),
        "y" if len(hidden) == 1 else "ies",
        user_id,
    )
    return len(hidden)
