"""
Dataset Profiling Module

Parses a stored comma-delimited file and builds the metadata saved for a
dataset: shape, a small preview, and per-column type/role heuristics.

Type inference works on a tiny sample (the first few data rows), while
null/unique counts come from a full pass over every data row.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from causal_lab.engine.ingest import decode_text, non_blank_lines
from causal_lab.models.datasets import ColumnDataType

SAMPLE_ROW_LIMIT = 5
SAMPLE_VALUE_LIMIT = 5
CATEGORICAL_MAX_DISTINCT = 10
BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0", "yes", "no"})


def clean_cell(value: str) -> str:
    """Trim whitespace and strip surrounding quote characters."""
    return value.strip().strip("\"'")


def split_cells(line: str) -> List[str]:
    return [clean_cell(v) for v in line.split(",")]


def _is_finite_number(value: str) -> bool:
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


def classify_column(samples: List[str]) -> Tuple[ColumnDataType, bool, bool]:
    """
    Infer a column's data type and candidate roles from sampled values.

    Rules are checked in order; the first match wins:
      numeric      every value parses as a finite number
      boolean      every value is one of true/false/1/0/yes/no (any case)
      categorical  <= 10 distinct values and at least one repeat
      text         anything else, including an empty sample

    Returns:
        (data_type, is_potential_target, is_potential_treatment)

    Examples:
        ["1", "2.5", "3"]         → numeric, target
        ["yes", "No", "YES"]      → boolean, treatment
        ["a", "b", "a"]           → categorical, treatment
        ["alice", "bob"]          → text
    """
    if not samples:
        return ColumnDataType.TEXT, False, False

    if all(_is_finite_number(v) for v in samples):
        return ColumnDataType.NUMERIC, True, False

    if all(v.lower() in BOOLEAN_TOKENS for v in samples):
        return ColumnDataType.BOOLEAN, False, True

    distinct = len(set(samples))
    if distinct <= CATEGORICAL_MAX_DISTINCT and distinct < len(samples):
        return ColumnDataType.CATEGORICAL, False, True

    return ColumnDataType.TEXT, False, False


def column_samples(sample_rows: List[List[str]], index: int, limit: int = SAMPLE_VALUE_LIMIT) -> List[str]:
    """Non-blank values at ``index`` from the preview rows (ragged rows are skipped)."""
    values = [row[index] for row in sample_rows if index < len(row) and row[index] != ""]
    return values[:limit]


def column_counts(rows: List[List[str]], n_cols: int) -> List[Tuple[int, int]]:
    """
    Full-scan (null_count, unique_count) per column.

    A blank or missing cell counts as null; unique_count is the number of
    distinct non-null values. Cells beyond the header width are ignored.
    """
    if n_cols == 0:
        return []

    normalized = [
        [(row[i] if i < len(row) and row[i] != "" else None) for i in range(n_cols)]
        for row in rows
    ]
    df = pd.DataFrame(normalized, columns=range(n_cols), dtype="object")

    nulls = df.isna().sum()
    uniques = df.nunique(dropna=True)
    return [(int(nulls[i]), int(uniques[i])) for i in range(n_cols)]


def build_profile(content: bytes) -> Dict[str, Any]:
    """
    Build the profile of an uploaded comma-delimited file.

    Args:
        content: raw file bytes (UTF-8 expected; bad bytes are replaced)

    Returns:
        Dictionary containing:
        - columns_count: number of header fields
        - rows_count: non-blank lines after the header
        - sample_rows: first <= 5 data rows, cleaned like the header (None if no rows)
        - columns: list of column_info dicts, one per header field, in header order

    Example:
        {
            "columns_count": 2,
            "rows_count": 3,
            "sample_rows": [["1", "yes"], ["2", "no"], ["3", "yes"]],
            "columns": [
                {"column_name": "age", "data_type": "numeric", "null_count": 0,
                 "unique_count": 3, "sample_values": ["1", "2", "3"],
                 "is_potential_target": True, "is_potential_treatment": False},
                ...
            ]
        }
    """
    lines = non_blank_lines(decode_text(content))
    if not lines:
        return {"columns_count": 0, "rows_count": 0, "sample_rows": None, "columns": []}

    headers = split_cells(lines[0])
    data_rows = [split_cells(ln) for ln in lines[1:]]
    preview = data_rows[:SAMPLE_ROW_LIMIT]
    counts = column_counts(data_rows, len(headers))

    columns: List[Dict[str, Any]] = []
    for index, name in enumerate(headers):
        samples = column_samples(preview, index)
        data_type, is_target, is_treatment = classify_column(samples)
        null_count, unique_count = counts[index]
        columns.append({
            "column_name": name,
            "data_type": data_type.value,
            "null_count": null_count,
            "unique_count": unique_count,
            "sample_values": samples or None,
            "is_potential_target": is_target,
            "is_potential_treatment": is_treatment,
        })

    sample_rows: Optional[List[List[str]]] = preview or None
    return {
        "columns_count": len(headers),
        "rows_count": len(data_rows),
        "sample_rows": sample_rows,
        "columns": columns,
    }
