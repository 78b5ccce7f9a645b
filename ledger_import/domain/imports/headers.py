"""
Header normalization and fuzzy header → field mapping.

Uploaded files label their columns however they like ("Target Amount",
"target_amount", "AMOUNT ($)"). ``map_headers`` resolves each schema field to
at most one column using, in priority order:

1. exact match of the normalized header against the field's canonical name
   or template header,
2. a header equal to one of the field's aliases,
3. a header containing one of the field's aliases.

Each pass walks the schema fields in order and a header is consumed by at
most one field, so earlier fields win ties.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ledger_import.domain.imports.errors import HeaderMappingError
from ledger_import.domain.imports.schemas import EntitySchema

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_header(header: str) -> str:
    """Lower-case and drop whitespace and punctuation: "Interest Rate (%)" -> "interestrate"."""
    if header is None:
        return ""
    return _NON_ALNUM.sub("", str(header).lower())


@dataclass
class HeaderMapping:
    """Result of matching one header row against a schema."""
    headers: List[str]
    field_to_index: Dict[str, int] = field(default_factory=dict)
    unmapped_required: List[str] = field(default_factory=list)
    ignored_headers: List[str] = field(default_factory=list)

    def index_of(self, field_name: str) -> Optional[int]:
        return self.field_to_index.get(field_name)

    def header_for(self, field_name: str) -> Optional[str]:
        index = self.field_to_index.get(field_name)
        return self.headers[index] if index is not None else None

    def warnings(self, schema: EntitySchema) -> List[str]:
        messages = []
        if self.unmapped_required:
            labels = [schema.get_field(name).template_header for name in self.unmapped_required]
            messages.append(f"No column found for required field(s): {', '.join(labels)}")
        if self.ignored_headers:
            messages.append(f"Ignored unrecognised column(s): {', '.join(self.ignored_headers)}")
        return messages


def map_headers(headers: Sequence[str], schema: EntitySchema) -> HeaderMapping:
    """
    Map schema fields to header indices.

    Args:
        headers: Raw header row
        schema: Entity schema to map against

    Returns:
        HeaderMapping with the field → column index table

    Raises:
        HeaderMappingError: If none of the schema's required fields matched a header
    """
    normalized = [normalize_header(h) for h in headers]
    consumed: Set[int] = set()
    field_to_index: Dict[str, int] = {}

    def claim(field_name: str, index: int) -> None:
        field_to_index[field_name] = index
        consumed.add(index)

    # Pass 1: canonical name or template header
    for spec in schema.fields:
        targets = {normalize_header(spec.name), normalize_header(spec.template_header)}
        for index, value in enumerate(normalized):
            if index not in consumed and value and value in targets:
                claim(spec.name, index)
                break

    # Pass 2: header equal to an alias
    for spec in schema.fields:
        if spec.name in field_to_index:
            continue
        for alias in spec.aliases:
            index = _find_header(normalized, consumed, lambda value, a=alias: value == a)
            if index is not None:
                claim(spec.name, index)
                break

    # Pass 3: header containing an alias
    for spec in schema.fields:
        if spec.name in field_to_index:
            continue
        for alias in spec.aliases:
            index = _find_header(normalized, consumed, lambda value, a=alias: a in value)
            if index is not None:
                claim(spec.name, index)
                break

    required = [spec.name for spec in schema.required_fields]
    unmapped_required = [name for name in required if name not in field_to_index]
    ignored = [headers[i] for i in range(len(headers)) if i not in consumed and normalized[i]]

    if required and len(unmapped_required) == len(required):
        labels = [schema.get_field(name).template_header for name in required]
        raise HeaderMappingError(schema.kind, missing=labels, required=labels)

    if unmapped_required:
        logger.info("Import %s: no column for required field(s) %s", schema.kind, unmapped_required)

    return HeaderMapping(
        headers=list(headers),
        field_to_index=field_to_index,
        unmapped_required=unmapped_required,
        ignored_headers=ignored,
    )


def _find_header(normalized: List[str], consumed: Set[int], predicate) -> Optional[int]:
    for index, value in enumerate(normalized):
        if index in consumed or not value:
            continue
        if predicate(value):
            return index
    return None


def build_mapped_row(cells: Sequence[str], mapping: HeaderMapping, schema: EntitySchema) -> Dict[str, str]:
    """
    Project raw cells onto canonical field names.

    Short rows read missing trailing cells as "" and unmapped fields are "".
    """
    row: Dict[str, str] = {}
    for spec in schema.fields:
        index = mapping.index_of(spec.name)
        if index is None or index >= len(cells):
            row[spec.name] = ""
        else:
            row[spec.name] = (cells[index] or "").strip()
    return row
