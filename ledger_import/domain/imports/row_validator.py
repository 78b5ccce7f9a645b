"""
Row validation: Mapped Row + schema + reference index → typed record or errors.

Validation never stops at the first problem; every failing field of a row is
reported so the user can fix them all in one correction pass.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ledger_import.domain.imports.references import CategoryRef, ReferenceIndex
from ledger_import.domain.imports.schemas import (
    EntitySchema,
    FieldKind,
    FieldSpec,
    ReferencePolicy,
)
from ledger_import.domain.imports.validators import (
    check_range,
    parse_color,
    parse_enum,
    parse_number,
    parse_positive_int,
    split_list,
    validate_with_preset,
)
from ledger_import.utils.date import DateFailureLog, parse_import_date, parse_import_datetime
from ledger_import.utils.serialization import _make_json_safe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidatedRecord:
    """Typed values of one row, ready for a persister."""
    entity: str
    values: Dict[str, Any]
    row_number: int = 0
    mapped_row: Dict[str, str] = field(default_factory=dict)

    def natural_key(self, schema: EntitySchema) -> Tuple[Any, ...]:
        key = []
        for name in schema.natural_key:
            value = self.values.get(name)
            key.append(value.name if isinstance(value, CategoryRef) else value)
        return tuple(key)

    def to_dict(self) -> Dict[str, Any]:
        return _make_json_safe(self.values)


@dataclass
class ValidationResult:
    record: Optional[ValidatedRecord] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors

    @property
    def message(self) -> str:
        return "; ".join(error.message for error in self.errors)


def _parse_value(
    spec: FieldSpec,
    raw: str,
    entity_kind: str,
    date_failures: Optional[DateFailureLog] = None,
) -> Any:
    """Parse one non-empty, non-reference cell; raises ValueError with the row-facing message."""
    label = spec.display_label

    if spec.kind == FieldKind.NUMBER:
        try:
            value = parse_number(raw)
        except ValueError:
            raise ValueError(f"Invalid {label.lower()} format ({raw})")
        complaint = check_range(value, spec.min_value, spec.min_inclusive)
        if complaint:
            raise ValueError(spec.range_message or f"Invalid {label.lower()} value ({raw}). {complaint}")
        return value

    if spec.kind == FieldKind.DATE:
        try:
            return parse_import_date(raw, log_context=f"{entity_kind}.{spec.name}", failures=date_failures)
        except ValueError as exc:
            raise ValueError(f"{label}: {exc}")

    if spec.kind == FieldKind.DATETIME:
        try:
            return parse_import_datetime(raw, log_context=f"{entity_kind}.{spec.name}", failures=date_failures)
        except ValueError as exc:
            raise ValueError(f"{label}: {exc}")

    if spec.kind == FieldKind.INTEGER:
        try:
            return parse_positive_int(raw)
        except ValueError:
            raise ValueError(f"Invalid {label} value ({raw}). Must be a positive number.")

    if spec.kind == FieldKind.COLOR:
        # Unrecognised colors fall back to the field default.
        return parse_color(raw)

    if spec.kind == FieldKind.ENUM:
        try:
            return parse_enum(raw, spec.choices or {})
        except ValueError as exc:
            raise ValueError(f"Invalid {label.lower()}: {exc}")

    if spec.kind == FieldKind.LIST:
        return split_list(raw)

    if spec.pattern:
        is_valid, _ = validate_with_preset(raw, spec.pattern)
        if not is_valid:
            raise ValueError(f"Invalid {label.lower()} ({raw})")
    return raw


def _resolve_reference(
    spec: FieldSpec,
    raw: str,
    values: Dict[str, Any],
    reference_index: ReferenceIndex,
    policy: ReferencePolicy,
) -> Tuple[Any, Optional[str]]:
    """Return (value, error message) for a non-empty reference cell."""
    if spec.reference == "category":
        scope = spec.reference_scope or values.get(spec.reference_scope_field)
        if not scope:
            # The scoping field is missing or invalid and reports its own error.
            return None, None
        entry = reference_index.find_category(raw, scope)
        if entry is not None:
            return CategoryRef(entry.name, entry.type, entry.id), None
        if policy == ReferencePolicy.AUTO_CREATE:
            return CategoryRef(raw, scope, None), None
        return None, f"Category not found ({raw}). Please ensure the {scope.lower()} category exists."

    if spec.reference == "account":
        account_id = reference_index.resolve_account(raw)
        if account_id is not None:
            return account_id, None
        if spec.required:
            return None, f"Account not found ({raw}). Please ensure the account exists or matches the exported format."
        return None, None

    if spec.reference == "debt":
        try:
            source_id = parse_positive_int(raw)
        except ValueError:
            return None, f"Invalid debt ID value ({raw}). Must be a positive number."
        debt_id = reference_index.resolve_debt(source_id)
        if debt_id is None:
            return None, f"Debt ID {source_id} not found or does not belong to current user"
        return debt_id, None

    raise ValueError(f"Unsupported reference target '{spec.reference}' on field {spec.name}")


def validate_row(
    mapped_row: Dict[str, str],
    schema: EntitySchema,
    reference_index: ReferenceIndex,
    policy: Optional[ReferencePolicy] = None,
    row_number: int = 0,
    date_failures: Optional[DateFailureLog] = None,
) -> ValidationResult:
    """
    Validate one Mapped Row against its entity schema.

    Args:
        mapped_row: Canonical field → raw cell string
        schema: Entity schema
        reference_index: Category, account and debt lookup snapshot
        policy: Reference policy override (defaults to the schema's own)
        row_number: 1-based file row number, carried onto the record
        date_failures: Collector for unparseable dates of the current run

    Returns:
        ValidationResult holding either the typed record or every field error
    """
    policy = policy or schema.reference_policy
    errors: List[FieldError] = []
    failed = set()
    values: Dict[str, Any] = {}
    references: List[Tuple[FieldSpec, str]] = []

    def fail(field_name: str, message: str) -> None:
        errors.append(FieldError(field_name, message))
        failed.add(field_name)

    for spec in schema.fields:
        raw = (mapped_row.get(spec.name) or "").strip()

        if spec.kind == FieldKind.REFERENCE:
            references.append((spec, raw))
            continue

        if not raw:
            if spec.required and not spec.has_default:
                fail(spec.name, f"{spec.display_label} is required")
            else:
                values[spec.name] = [] if spec.kind == FieldKind.LIST else None
            continue

        try:
            values[spec.name] = _parse_value(spec, raw, schema.kind, date_failures)
        except ValueError as exc:
            fail(spec.name, str(exc))

    # Defaults see the parsed values of the row (e.g. description falls back to website name).
    for spec in schema.fields:
        if spec.has_default and spec.name not in failed and values.get(spec.name) is None:
            values[spec.name] = spec.resolve_default(values)

    for spec, raw in references:
        if not raw:
            if spec.required:
                fail(spec.name, f"{spec.display_label} is required")
            else:
                values[spec.name] = None
            continue
        value, message = _resolve_reference(spec, raw, values, reference_index, policy)
        if message:
            fail(spec.name, message)
        elif value is not None or not spec.required:
            values[spec.name] = value

    for rule in schema.date_rules:
        if rule.start in failed or rule.end in failed:
            continue
        start, end = values.get(rule.start), values.get(rule.end)
        if start is not None and end is not None:
            if end <= start:
                fail(rule.end, rule.message)
        elif rule.default_range is not None:
            values[rule.start], values[rule.end] = rule.default_range()

    if errors:
        return ValidationResult(errors=errors)

    missing = [spec.name for spec in schema.required_fields if values.get(spec.name) is None]
    if missing:
        # A required reference whose scope failed elsewhere; the row already carries that error.
        logger.debug("Row %s of %s import left required fields unresolved: %s", row_number, schema.kind, missing)
        return ValidationResult(errors=[FieldError(name, f"{schema.get_field(name).display_label} is required") for name in missing])

    return ValidationResult(
        record=ValidatedRecord(
            entity=schema.kind,
            values=values,
            row_number=row_number,
            mapped_row=dict(mapped_row),
        )
    )


def preview_errors(
    mapped_row: Dict[str, str],
    schema: EntitySchema,
    reference_index: ReferenceIndex,
    policy: Optional[ReferencePolicy] = None,
) -> List[FieldError]:
    """Field-level errors of a (draft) row without building a record."""
    return validate_row(mapped_row, schema, reference_index, policy).errors
