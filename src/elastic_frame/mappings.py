"""Ready-made index mappings for frames indexed with default settings."""

from __future__ import annotations

from typing import Any


def _string_template(*, fielddata: bool) -> dict[str, Any]:
    mapping: dict[str, Any] = {
        "type": "text",
        "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
    }
    if fielddata:
        mapping["fielddata"] = True
    return {"strings": {"match_mapping_type": "string", "mapping": mapping}}


def mapping_default_simple() -> dict[str, Any]:
    """Map every string field to ``text`` with a ``keyword`` sub-field.

    Returns:
        dict[str, Any]: Index creation body.

    """
    return {"mappings": {"dynamic_templates": [_string_template(fielddata=False)]}}


def mapping_fielddata_true(*fields: str) -> dict[str, Any]:
    """Map string fields to ``text`` with fielddata enabled so they can be aggregated.

    Args:
        *fields (str): Text fields declared explicitly; all other strings use the dynamic template.

    Returns:
        dict[str, Any]: Index creation body.

    """
    return {
        "mappings": {
            "dynamic_templates": [_string_template(fielddata=True)],
            "properties": {field: {"type": "text", "fielddata": True} for field in fields},
        },
    }
