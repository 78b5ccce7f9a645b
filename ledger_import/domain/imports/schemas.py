"""
Declarative per-entity import schemas.

Each importable entity is described by an ``EntitySchema`` value: its ordered
fields, header aliases, enum alias tables, cross-field date rules, natural key
and sample template rows. The engine (mapper, validator, batch importer) is
generic and reads everything it needs from these values, so adding an entity
means adding a schema and a persister, not new engine code.

Enum alias tables are keyed by the normalized form of the input
(lower-case, alphanumerics only), so "Partially Paid", "partially_paid" and
"PARTIALLYPAID" all land on the same entry.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ledger_import.domain.imports.errors import UnknownEntityError


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    ENUM = "enum"
    REFERENCE = "reference"
    LIST = "list"
    INTEGER = "integer"
    DATETIME = "datetime"
    COLOR = "color"


class ReferencePolicy(str, Enum):
    """What to do when a required category reference does not resolve."""
    STRICT = "strict"
    AUTO_CREATE = "auto_create"


@dataclass(frozen=True)
class FieldSpec:
    """
    One canonical field of an entity.

    ``default`` may be a plain value or a callable receiving the already
    parsed values of the row (used for fields that fall back to another
    field). ``choices`` maps normalized input tokens to canonical values for
    enum fields. ``reference`` names the lookup target ("category", "account" or
    "debt"); category references are scoped to a type either fixed by
    ``reference_scope`` or read from the field named by
    ``reference_scope_field``.
    """
    name: str
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    aliases: Tuple[str, ...] = ()
    label: Optional[str] = None
    header: Optional[str] = None
    min_value: Optional[float] = None
    min_inclusive: bool = True
    range_message: Optional[str] = None
    choices: Optional[Mapping[str, Any]] = None
    reference: Optional[str] = None
    reference_scope: Optional[str] = None
    reference_scope_field: Optional[str] = None
    pattern: Optional[str] = None
    default: Any = None

    @property
    def display_label(self) -> str:
        """Sentence-case label used in error messages."""
        return self.label or self.name.replace("_", " ").capitalize()

    @property
    def template_header(self) -> str:
        return self.header or " ".join(part.capitalize() for part in self.name.split("_"))

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def resolve_default(self, values: Dict[str, Any]) -> Any:
        if callable(self.default):
            return self.default(values)
        return self.default


def current_month_range(today: Optional[date] = None) -> Tuple[date, date]:
    """First and last day of the month containing ``today``."""
    today = today or date.today()
    start = today.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


@dataclass(frozen=True)
class DateRangeRule:
    """
    When both dates are present, ``end`` must be strictly after ``start``.

    With ``default_range`` set, a row missing either date gets both dates
    from the callable instead.
    """
    start: str
    end: str
    message: str
    default_range: Optional[Callable[[], Tuple[date, date]]] = None


@dataclass(frozen=True)
class EntitySchema:
    kind: str
    title: str
    fields: Tuple[FieldSpec, ...]
    date_rules: Tuple[DateRangeRule, ...] = ()
    natural_key: Tuple[str, ...] = ()
    reference_policy: ReferencePolicy = ReferencePolicy.STRICT
    reconcile_visibility: bool = False
    unique_in_file: bool = False
    source_key: Optional[str] = None
    template_rows: Tuple[Tuple[str, ...], ...] = ()
    description: str = ""
    _by_name: Dict[str, FieldSpec] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._by_name.update({spec.name: spec for spec in self.fields})

    def get_field(self, name: str) -> Optional[FieldSpec]:
        return self._by_name.get(name)

    @property
    def field_names(self) -> List[str]:
        return [spec.name for spec in self.fields]

    @property
    def required_fields(self) -> List[FieldSpec]:
        return [spec for spec in self.fields if spec.required]

    @property
    def optional_fields(self) -> List[FieldSpec]:
        return [spec for spec in self.fields if not spec.required]

    @property
    def template_headers(self) -> List[str]:
        """Required headers first, then optional ones, each in schema order."""
        return [spec.template_header for spec in self.required_fields + self.optional_fields]


# ---------------------------------------------------------------------------
# Enum alias tables
# ---------------------------------------------------------------------------

CATEGORY_TYPES = {
    "income": "INCOME",
    "expense": "EXPENSE",
}

BUDGET_PERIODS = {
    "weekly": "WEEKLY",
    "monthly": "MONTHLY",
    "quarterly": "QUARTERLY",
    "yearly": "YEARLY",
    "annual": "YEARLY",
    "annually": "YEARLY",
}

RECURRING_FREQUENCIES = {
    "daily": "DAILY",
    "weekly": "WEEKLY",
    "monthly": "MONTHLY",
    "quarterly": "QUARTERLY",
    "yearly": "YEARLY",
    "annual": "YEARLY",
    "annually": "YEARLY",
}

DEBT_STATUSES = {
    "active": "ACTIVE",
    "partiallypaid": "PARTIALLY_PAID",
    "partial": "PARTIALLY_PAID",
    "fullypaid": "FULLY_PAID",
    "paid": "FULLY_PAID",
    "overdue": "OVERDUE",
    "late": "OVERDUE",
    "defaulted": "DEFAULTED",
    "default": "DEFAULTED",
}

INVESTMENT_TYPES = {
    "stocks": "STOCKS",
    "stock": "STOCKS",
    "equity": "STOCKS",
    "crypto": "CRYPTO",
    "cryptocurrency": "CRYPTO",
    "bitcoin": "CRYPTO",
    "mutualfunds": "MUTUAL_FUNDS",
    "mutualfund": "MUTUAL_FUNDS",
    "mf": "MUTUAL_FUNDS",
    "bonds": "BONDS",
    "bond": "BONDS",
    "realestate": "REAL_ESTATE",
    "property": "REAL_ESTATE",
    "gold": "GOLD",
    "fixeddeposit": "FIXED_DEPOSIT",
    "fd": "FIXED_DEPOSIT",
    "deposit": "FIXED_DEPOSIT",
    "other": "OTHER",
}

INVESTMENT_TARGET_TYPES = dict(
    INVESTMENT_TYPES,
    shares="STOCKS",
    treasury="BONDS",
    realty="REAL_ESTATE",
    preciousmetals="GOLD",
    providentfunds="PROVIDENT_FUNDS",
    providentfund="PROVIDENT_FUNDS",
    pf="PROVIDENT_FUNDS",
    safekeepings="SAFE_KEEPINGS",
    safekeeping="SAFE_KEEPINGS",
    savings="SAFE_KEEPINGS",
    emergencyfund="EMERGENCY_FUND",
    emergency="EMERGENCY_FUND",
    marriage="MARRIAGE",
    wedding="MARRIAGE",
    vacation="VACATION",
    travel="VACATION",
    holiday="VACATION",
)

BOOLEAN_CHOICES = {
    "true": True,
    "yes": True,
    "y": True,
    "1": True,
    "false": False,
    "no": False,
    "n": False,
    "0": False,
}


# ---------------------------------------------------------------------------
# Entity schemas
# ---------------------------------------------------------------------------

BUDGET_TARGET_SCHEMA = EntitySchema(
    kind="budget_target",
    title="Budget Targets",
    description=(
        "Budget targets keyed by category name. Re-importing a category replaces its "
        "target; categories absent from the file are hidden from the budget."
    ),
    fields=(
        FieldSpec(
            "category_name",
            FieldKind.REFERENCE,
            required=True,
            aliases=("categoryname", "category", "name"),
            reference="category",
            reference_scope_field="category_type",
        ),
        FieldSpec(
            "category_type",
            FieldKind.ENUM,
            required=True,
            aliases=("categorytype", "type"),
            choices=CATEGORY_TYPES,
        ),
        FieldSpec(
            "target_amount",
            FieldKind.NUMBER,
            required=True,
            aliases=("targetamount", "amount", "target", "budget"),
            min_value=0,
            min_inclusive=False,
            range_message="Target amount must be a positive number",
        ),
        FieldSpec("period", FieldKind.ENUM, required=True, aliases=("period", "frequency"), choices=BUDGET_PERIODS),
        FieldSpec("start_date", FieldKind.DATE, aliases=("startdate", "start")),
        FieldSpec("end_date", FieldKind.DATE, aliases=("enddate", "end")),
    ),
    date_rules=(
        DateRangeRule("start_date", "end_date", "Start date must be before end date", default_range=current_month_range),
    ),
    natural_key=("category_name",),
    reference_policy=ReferencePolicy.AUTO_CREATE,
    reconcile_visibility=True,
    template_rows=(
        ("Emergency Funds", "EXPENSE", "5000.00", "MONTHLY", "2025-01-01", "2025-01-31"),
        ("Groceries", "EXPENSE", "1200.00", "MONTHLY", "2025-01-01", "2025-01-31"),
        ("BOSCH Salary", "INCOME", "75000.00", "MONTHLY", "2025-01-01", "2025-01-31"),
    ),
)


def _transaction_fields(category_scope: str, extra: Tuple[FieldSpec, ...] = ()) -> Tuple[FieldSpec, ...]:
    """Shared shape of expense and income rows."""
    return (
        FieldSpec("title", required=True, aliases=("title", "name", category_scope.lower(), "item")),
        FieldSpec(
            "amount",
            FieldKind.NUMBER,
            required=True,
            aliases=("amount", "cost", "price", "value", "sum", "total"),
            min_value=0,
            min_inclusive=False,
        ),
        FieldSpec("date", FieldKind.DATE, required=True, aliases=("date", "when")),
        FieldSpec(
            "category",
            FieldKind.REFERENCE,
            required=True,
            aliases=("category", "categoryname", "type", "kind", "group"),
            reference="category",
            reference_scope=category_scope,
        ),
        FieldSpec(
            "account",
            FieldKind.REFERENCE,
            aliases=("account", "accountname", "bank", "wallet"),
            reference="account",
        ),
        FieldSpec("description", aliases=("description", "note", "memo", "details")),
        FieldSpec("tags", FieldKind.LIST, aliases=("tags", "labels")),
        FieldSpec("notes", aliases=("notes", "remarks")),
    ) + extra + (
        FieldSpec(
            "recurring",
            FieldKind.ENUM,
            aliases=("recurring", "isrecurring", "repeat"),
            choices=BOOLEAN_CHOICES,
            default=False,
        ),
        FieldSpec(
            "frequency",
            FieldKind.ENUM,
            aliases=("frequency", "recurringfrequency", "interval"),
            choices=RECURRING_FREQUENCIES,
        ),
    )


EXPENSE_SCHEMA = EntitySchema(
    kind="expense",
    title="Expenses",
    description="Expenses matched against existing expense categories and accounts.",
    fields=_transaction_fields(
        "EXPENSE",
        extra=(FieldSpec("location", aliases=("location", "place", "where")),),
    ),
    template_rows=(
        ("Weekly groceries", "86.40", "2025-01-04", "Groceries", "John Doe - Chase", "Farmers market run", "food;weekly", "", "Downtown", "yes", "WEEKLY"),
        ("Electricity bill", "120.00", "01/15/2025", "Utilities", "", "", "bills", "Paid online", "", "no", ""),
    ),
)

INCOME_SCHEMA = EntitySchema(
    kind="income",
    title="Incomes",
    description="Incomes matched against existing income categories and accounts.",
    fields=_transaction_fields("INCOME"),
    template_rows=(
        ("January salary", "75000.00", "2025-01-31", "Salary", "John Doe - Chase", "Monthly pay", "salary", "", "yes", "MONTHLY"),
        ("Freelance invoice #42", "1250.00", "15-01-2025", "Freelance", "", "Logo design", "side;design", "Net 30", "no", ""),
    ),
)

DEBT_SCHEMA = EntitySchema(
    kind="debt",
    title="Debts",
    description="Money lent to others, with optional account and repayment status.",
    fields=(
        FieldSpec("borrower_name", required=True, aliases=("borrowername", "borrower", "name")),
        FieldSpec(
            "amount",
            FieldKind.NUMBER,
            required=True,
            aliases=("amount", "principal", "loanamount"),
            min_value=0,
            min_inclusive=False,
        ),
        FieldSpec(
            "interest_rate",
            FieldKind.NUMBER,
            required=True,
            aliases=("interestrate", "interest", "rate"),
            header="Interest Rate (%)",
            min_value=0,
        ),
        FieldSpec("lent_date", FieldKind.DATE, required=True, aliases=("lentdate", "lent", "loandate", "date")),
        FieldSpec("due_date", FieldKind.DATE, aliases=("duedate", "due")),
        FieldSpec("status", FieldKind.ENUM, aliases=("status", "state"), choices=DEBT_STATUSES, default="ACTIVE"),
        FieldSpec("borrower_contact", aliases=("borrowercontact", "contact", "phone", "mobile")),
        FieldSpec("borrower_email", aliases=("borroweremail", "email"), pattern="email"),
        FieldSpec("purpose", aliases=("purpose", "reason")),
        FieldSpec("notes", aliases=("notes", "remarks")),
        FieldSpec("account", FieldKind.REFERENCE, aliases=("account", "bankname", "bank"), reference="account"),
        FieldSpec(
            "source_id",
            FieldKind.INTEGER,
            aliases=("debtid", "originalid", "sourceid"),
            label="Debt ID",
            header="ID",
        ),
    ),
    date_rules=(DateRangeRule("lent_date", "due_date", "Due date must be after lent date"),),
    source_key="source_id",
    template_rows=(
        ("Jane Smith", "2500.00", "5", "2025-01-10", "2025-06-10", "ACTIVE", "+1 555 0100", "jane@example.com", "Car repair", "", "John Doe - Chase", "1"),
        ("Rahul Mehta", "800", "0", "02/01/2025", "", "Partially Paid", "", "", "Rent help", "Pays monthly", "", "2"),
    ),
)

INVESTMENT_SCHEMA = EntitySchema(
    kind="investment",
    title="Investments",
    description="Holdings tied to an existing account.",
    fields=(
        FieldSpec("name", required=True, aliases=("name", "investmentname", "asset", "holding")),
        FieldSpec("type", FieldKind.ENUM, required=True, aliases=("type", "investmenttype", "assettype"), choices=INVESTMENT_TYPES),
        FieldSpec("quantity", FieldKind.NUMBER, required=True, aliases=("quantity", "qty", "units", "shares"), min_value=0, min_inclusive=False),
        FieldSpec(
            "purchase_price",
            FieldKind.NUMBER,
            required=True,
            aliases=("purchaseprice", "buyprice", "costprice"),
            min_value=0,
            min_inclusive=False,
        ),
        FieldSpec(
            "current_price",
            FieldKind.NUMBER,
            required=True,
            aliases=("currentprice", "marketprice", "price"),
            min_value=0,
            min_inclusive=False,
        ),
        FieldSpec("purchase_date", FieldKind.DATE, required=True, aliases=("purchasedate", "boughton", "date")),
        FieldSpec(
            "account",
            FieldKind.REFERENCE,
            required=True,
            aliases=("account", "accountname", "bankname", "bank"),
            reference="account",
        ),
        FieldSpec("symbol", aliases=("symbol", "ticker")),
        FieldSpec("interest_rate", FieldKind.NUMBER, aliases=("interestrate", "interest", "rate"), min_value=0),
        FieldSpec("maturity_date", FieldKind.DATE, aliases=("maturitydate", "maturity")),
        FieldSpec("notes", aliases=("notes", "remarks")),
    ),
    date_rules=(DateRangeRule("purchase_date", "maturity_date", "Maturity date must be after the purchase date"),),
    template_rows=(
        ("Apple Inc.", "STOCKS", "10", "150.25", "189.10", "2024-03-15", "John Doe - Chase", "AAPL", "", "", "Long term"),
        ("Bank FD", "Fixed Deposit", "1", "10000", "10000", "2024-04-01", "John Doe - Chase", "", "7.1", "2026-04-01", ""),
    ),
)

ACCOUNT_SCHEMA = EntitySchema(
    kind="account",
    title="Accounts",
    description="Bank accounts. Multi-value columns take ';'-separated lists.",
    fields=(
        FieldSpec("holder_name", required=True, aliases=("holdername", "accountholder", "holder", "name")),
        FieldSpec("account_number", required=True, aliases=("accountnumber", "accountno", "acno", "number")),
        FieldSpec("bank_name", required=True, aliases=("bankname", "bank")),
        FieldSpec("branch_name", required=True, aliases=("branchname", "branch")),
        FieldSpec("branch_code", aliases=("branchcode", "ifsc", "ifsccode", "sortcode")),
        FieldSpec("bank_address", aliases=("bankaddress", "address")),
        FieldSpec("account_type", aliases=("accounttype", "type")),
        FieldSpec("swift_code", aliases=("swiftcode", "swift", "bic"), header="SWIFT Code"),
        FieldSpec("account_opening_date", FieldKind.DATE, aliases=("accountopeningdate", "openingdate", "openedon")),
        FieldSpec("mobile_numbers", FieldKind.LIST, aliases=("mobilenumbers", "mobile", "phone")),
        FieldSpec("branch_contacts", FieldKind.LIST, aliases=("branchcontacts", "branchcontact")),
        FieldSpec("bank_email", aliases=("bankemail", "email"), pattern="email"),
        FieldSpec("security_questions", FieldKind.LIST, aliases=("securityquestions", "questions")),
        FieldSpec("balance", FieldKind.NUMBER, aliases=("balance", "currentbalance")),
        FieldSpec("app_username", aliases=("appusername", "netbankingid", "loginid")),
        FieldSpec("notes", aliases=("notes", "remarks")),
        FieldSpec("nickname", aliases=("nickname", "alias")),
    ),
    template_rows=(
        (
            "John Doe", "1234567890", "Chase", "Main Street", "CHAS0001", "1 Main St, Springfield",
            "SAVINGS", "CHASUS33", "2020-05-01", "+1 555 0100;+1 555 0101", "+1 555 0199",
            "support@chase.example", "First pet?", "15230.50", "jdoe", "Primary account", "Everyday",
        ),
    ),
)

PASSWORD_SCHEMA = EntitySchema(
    kind="password",
    title="Passwords",
    description="Credentials. Secrets are stored exactly as supplied (plain or pre-encrypted).",
    fields=(
        FieldSpec("website_name", required=True, aliases=("websitename", "website", "site", "service", "url")),
        FieldSpec("username", required=True, aliases=("username", "login", "user", "email")),
        FieldSpec("password", required=True, aliases=("password", "passwordhash", "secret")),
        FieldSpec(
            "description",
            aliases=("description", "desc"),
            default=lambda values: values.get("website_name"),
        ),
        FieldSpec(
            "transaction_pin",
            aliases=("transactionpin", "transactionpinhash", "pin"),
            label="Transaction PIN",
            header="Transaction PIN",
        ),
        FieldSpec("validity", FieldKind.DATE, aliases=("validity", "validuntil", "expiry", "expires")),
        FieldSpec("notes", aliases=("notes", "remarks")),
        FieldSpec("category", aliases=("category", "group")),
        FieldSpec("tags", FieldKind.LIST, aliases=("tags", "labels")),
    ),
    template_rows=(
        ("GitHub", "jdoe", "s3cr3t!", "Work code hosting", "", "2026-12-31", "2FA enabled", "Work", "dev;work"),
        ("My Bank", "jdoe@example.com", "hunter2", "", "4321", "", "", "Finance", "bank"),
    ),
)


CATEGORY_SCHEMA = EntitySchema(
    kind="category",
    title="Categories",
    description=(
        "Income and expense categories. An existing category with the same name and "
        "type keeps its id and takes the new color and icon."
    ),
    fields=(
        FieldSpec("name", required=True, aliases=("name", "categoryname", "category", "title")),
        FieldSpec("type", FieldKind.ENUM, required=True, aliases=("type", "categorytype", "kind"), choices=CATEGORY_TYPES),
        FieldSpec("color", FieldKind.COLOR, aliases=("color", "colour", "hex"), default="#6B7280"),
        FieldSpec("icon", aliases=("icon", "emoji", "symbol")),
    ),
    natural_key=("name", "type"),
    unique_in_file=True,
    template_rows=(
        ("Groceries", "EXPENSE", "#10B981", "shopping-cart"),
        ("Utilities", "EXPENSE", "#F59E0B", "zap"),
        ("Salary", "INCOME", "#3B82F6", "briefcase"),
        ("Freelance", "INCOME", "purple", ""),
    ),
)

INVESTMENT_TARGET_SCHEMA = EntitySchema(
    kind="investment_target",
    title="Investment Targets",
    description="One savings goal per investment type. Re-importing a type replaces its goal.",
    fields=(
        FieldSpec(
            "investment_type",
            FieldKind.ENUM,
            required=True,
            aliases=("investmenttype", "type", "goaltype"),
            choices=INVESTMENT_TARGET_TYPES,
        ),
        FieldSpec(
            "target_amount",
            FieldKind.NUMBER,
            required=True,
            aliases=("targetamount", "amount", "target", "goal"),
            min_value=0,
            min_inclusive=False,
            range_message="Target amount must be a positive number",
        ),
        FieldSpec(
            "target_completion_date",
            FieldKind.DATE,
            required=True,
            aliases=("targetcompletiondate", "completiondate", "targetdate", "deadline", "date"),
        ),
        FieldSpec("nickname", aliases=("nickname", "name", "label")),
    ),
    natural_key=("investment_type",),
    unique_in_file=True,
    template_rows=(
        ("STOCKS", "500000.00", "2027-12-31", "Retirement equity"),
        ("Emergency Fund", "150000", "06/30/2026", "Rainy day"),
        ("Vacation", "80000", "31-03-2026", ""),
    ),
)

DEBT_REPAYMENT_SCHEMA = EntitySchema(
    kind="debt_repayment",
    title="Debt Repayments",
    description=(
        "Repayments against existing debts. The Debt ID column takes either a stored debt id "
        "or the ID column of a debt file imported in an earlier run."
    ),
    fields=(
        FieldSpec(
            "debt_id",
            FieldKind.REFERENCE,
            required=True,
            aliases=("debtid", "debt", "loanid", "loan"),
            label="Debt ID",
            header="Debt ID",
            reference="debt",
        ),
        FieldSpec(
            "amount",
            FieldKind.NUMBER,
            required=True,
            aliases=("amount", "repaymentamount", "paidamount"),
            min_value=0,
            min_inclusive=False,
        ),
        FieldSpec(
            "repayment_date",
            FieldKind.DATE,
            required=True,
            aliases=("repaymentdate", "paymentdate", "paidon", "date"),
        ),
        FieldSpec("notes", aliases=("notes", "remarks", "memo")),
    ),
    template_rows=(
        ("1", "500.00", "2025-02-10", "First instalment"),
        ("1", "750", "03/10/2025", ""),
        ("2", "800", "15-03-2025", "Settled in cash"),
    ),
)

NOTE_SCHEMA = EntitySchema(
    kind="note",
    title="Notes",
    description="Free-form notes with optional reminder, color and tags.",
    fields=(
        FieldSpec("title", required=True, aliases=("title", "notetitle", "name", "subject")),
        FieldSpec("content", aliases=("content", "body", "text", "note")),
        FieldSpec("color", FieldKind.COLOR, aliases=("color", "colour"), default="#fbbf24"),
        FieldSpec("tags", FieldKind.LIST, aliases=("tags", "labels")),
        FieldSpec("reminder_date", FieldKind.DATETIME, aliases=("reminderdate", "reminder", "remindat")),
        FieldSpec("is_pinned", FieldKind.ENUM, aliases=("ispinned", "pinned", "pin"), choices=BOOLEAN_CHOICES, default=False),
        FieldSpec("is_archived", FieldKind.ENUM, aliases=("isarchived", "archived"), choices=BOOLEAN_CHOICES, default=False),
    ),
    template_rows=(
        ("Renew car insurance", "Compare quotes before renewal", "#fbbf24", "car;insurance", "2025-03-01T09:00:00Z", "yes", "no"),
        ("Tax documents", "Collect Form 16 and interest certificates", "lightblue", "tax", "2025-07-15", "no", "no"),
    ),
)


SCHEMAS: Dict[str, EntitySchema] = {
    schema.kind: schema
    for schema in (
        BUDGET_TARGET_SCHEMA,
        EXPENSE_SCHEMA,
        INCOME_SCHEMA,
        DEBT_SCHEMA,
        INVESTMENT_SCHEMA,
        ACCOUNT_SCHEMA,
        PASSWORD_SCHEMA,
        CATEGORY_SCHEMA,
        INVESTMENT_TARGET_SCHEMA,
        DEBT_REPAYMENT_SCHEMA,
        NOTE_SCHEMA,
    )
}


def get_schema(entity_kind: str) -> EntitySchema:
    """
    Look up the schema for an entity kind.

    Raises:
        UnknownEntityError: If no schema is registered under ``entity_kind``
    """
    schema = SCHEMAS.get(entity_kind)
    if schema is None:
        raise UnknownEntityError(entity_kind)
    return schema
