"""Tests for the Postgres store's SQL building and JSON decoding (no database needed)."""

import json

import pytest

from causal_lab.db.registry import (
    PostgresStore,
    _coerce_json_value,
    _decode,
    _encode_values,
    _insert_sql,
    _update_sql,
)


def test_insert_sql_casts_json_columns():
    sql, args = _insert_sql("analyses", {"name": "a", "treatment_variables": ["t"], "results": None})

    assert sql == (
        "INSERT INTO analyses (name, treatment_variables, results) "
        "VALUES ($1, $2::jsonb, $3::jsonb) RETURNING *"
    )
    assert args == ["a", json.dumps(["t"]), None]


def test_encode_values_numbering_start():
    cols, placeholders, args = _encode_values("datasets", {"status": "ready", "rows_count": 3}, start=2)
    assert cols == ["status", "rows_count"]
    assert placeholders == ["$2", "$3"]
    assert args == ["ready", 3]


def test_update_sql_guards_on_status():
    sql, args = _update_sql("analyses", {"status": "running"}, ["pending", "failed"])

    assert sql == (
        "UPDATE analyses SET status = $2 "
        "WHERE id = $1 AND status = ANY($3::text[]) RETURNING *"
    )
    assert args == ["running", ["pending", "failed"]]


def test_update_sql_guard_follows_json_values():
    sql, args = _update_sql(
        "analyses",
        {"status": "completed", "results": {"effect": 1}},
        only_if_status=("running",),
    )

    assert sql == (
        "UPDATE analyses SET status = $2, results = $3::jsonb "
        "WHERE id = $1 AND status = ANY($4::text[]) RETURNING *"
    )
    assert args == ["completed", json.dumps({"effect": 1}), ["running"]]


def test_update_sql_without_guard():
    sql, args = _update_sql("datasets", {"status": "ready"})

    assert sql == "UPDATE datasets SET status = $2 WHERE id = $1 RETURNING *"
    assert args == ["ready"]


def test_unknown_column_rejected():
    with pytest.raises(ValueError):
        _encode_values("datasets", {"status; DROP TABLE datasets": "x"}, start=1)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        ([["a"]], [["a"]]),
        ('{"k": 1}', {"k": 1}),
        ("not json", None),
        ('"scalar"', None),
    ],
)
def test_coerce_json_value(value, expected):
    assert _coerce_json_value(value, default=None) == expected


def test_decode_only_touches_json_columns():
    row = _decode("column_info", {"column_name": '["x"]', "sample_values": '["1", "2"]'})
    assert row == {"column_name": '["x"]', "sample_values": ["1", "2"]}


@pytest.mark.asyncio
async def test_open_without_dsn_fails_fast():
    store = PostgresStore("")
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        await store.open()
