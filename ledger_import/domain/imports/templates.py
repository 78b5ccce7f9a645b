"""Sample CSV templates for each importable entity."""
from typing import Dict, List

from ledger_import.domain.imports.schemas import EntitySchema
from ledger_import.domain.imports.tokenizer import serialize_rows


def build_template_rows(schema: EntitySchema) -> List[List[str]]:
    """Header row (required columns first, then optional) followed by the sample rows."""
    headers = schema.template_headers
    rows = [list(headers)]
    for sample in schema.template_rows:
        cells = list(sample)[: len(headers)]
        cells.extend([""] * (len(headers) - len(cells)))
        rows.append(cells)
    return rows


def build_template_csv(schema: EntitySchema) -> str:
    return serialize_rows(build_template_rows(schema)) + "\n"


def template_filename(schema: EntitySchema) -> str:
    return f"{schema.kind}_import_template.csv"


def describe_schema(schema: EntitySchema) -> Dict[str, object]:
    """Summary used by the entity listing endpoint."""
    return {
        "entity": schema.kind,
        "title": schema.title,
        "description": schema.description,
        "required_headers": [spec.template_header for spec in schema.required_fields],
        "optional_headers": [spec.template_header for spec in schema.optional_fields],
        "reference_policy": schema.reference_policy.value,
    }
