"""Decode CRM query results into flat rows.

The CRM query layer answers in one of three shapes:

  [{"requirement_name": "Dev"}]                           bare rows
  {"status": "success", "data": [{"requirement_name": ...}]}  envelope
  [{"bi_t14s": {"requirement_name": "Dev"}, "0": {"profiles": "3"}}]
                                                          nested rows

Nested rows keep table columns under the physical table name and computed
columns under a positional key. Every component reads results through
decode() or first() so none of them has to know which shape came back.
"""

from typing import Any, Optional


class _NotFound:
    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


def unwrap(result: Any) -> list[dict]:
    """Return the row list of a bare or enveloped result."""
    if isinstance(result, dict):
        result = result.get("data")
    if not isinstance(result, (list, tuple)):
        return []
    return [row for row in result if isinstance(row, dict)]


def _is_positional(key) -> bool:
    if isinstance(key, int) and not isinstance(key, bool):
        return True
    return isinstance(key, str) and key.isdigit()


def _has_plain_columns(row: dict) -> bool:
    return any(not isinstance(value, dict) for value in row.values())


def extract(row: Any, field: str, table: Optional[str] = None):
    """Look up one field in a raw row.

    Order: nested under the table name, nested under a positional key,
    top-level, then any other nested mapping. A top-level value is kept
    whatever its type (json columns come back as dicts); other mappings
    count as nested tables only in rows without plain columns.
    Returns NOT_FOUND if absent.
    """
    if not isinstance(row, dict):
        return NOT_FOUND

    if table:
        nested = row.get(table)
        if isinstance(nested, dict) and field in nested:
            return nested[field]

    for key, value in row.items():
        if _is_positional(key) and isinstance(value, dict) and field in value:
            return value[field]

    if field in row:
        return row[field]

    if not _has_plain_columns(row):
        for value in row.values():
            if isinstance(value, dict) and field in value:
                return value[field]

    return NOT_FOUND


def flatten(row: dict, table: Optional[str] = None) -> dict:
    """Merge a raw row into one mapping with the same precedence as extract()."""
    flat = {}
    nested_other = []
    positional = []
    own = None
    plain = _has_plain_columns(row)

    for key, value in row.items():
        if not isinstance(value, dict):
            flat[key] = value
        elif table and key == table:
            own = value
        elif _is_positional(key):
            positional.append(value)
        elif not plain:
            nested_other.append(value)
        else:
            flat[key] = value

    # Lowest precedence first; later updates win.
    merged = {}
    for value in reversed(nested_other):
        merged.update(value)
    merged.update(flat)
    for value in reversed(positional):
        merged.update(value)
    if own is not None:
        merged.update(own)
    return merged


def decode(result: Any, table: Optional[str] = None) -> list[dict]:
    return [flatten(row, table) for row in unwrap(result)]


def first(result: Any, field: str, table: Optional[str] = None):
    """Field of the first row, or NOT_FOUND for an empty result."""
    rows = unwrap(result)
    if not rows:
        return NOT_FOUND
    return extract(rows[0], field, table)
