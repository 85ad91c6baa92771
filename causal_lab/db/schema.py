"""
Postgres DDL for the record store.

Deleting a dataset cascades to its column_info and analyses rows.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS datasets (
    id            SERIAL PRIMARY KEY,
    name          TEXT NOT NULL CHECK (length(name) > 0),
    description   TEXT,
    file_path     TEXT NOT NULL,
    file_size     INTEGER NOT NULL CHECK (file_size >= 0),
    columns_count INTEGER NOT NULL CHECK (columns_count >= 0),
    rows_count    INTEGER NOT NULL CHECK (rows_count >= 0),
    status        TEXT NOT NULL DEFAULT 'uploading'
                  CHECK (status IN ('uploading', 'processing', 'ready', 'error')),
    sample_rows   JSONB,
    uploaded_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    processed_at  TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS datasets_uploaded_at_idx ON datasets (uploaded_at DESC, id DESC);

CREATE TABLE IF NOT EXISTS column_info (
    id                     SERIAL PRIMARY KEY,
    dataset_id             INTEGER NOT NULL REFERENCES datasets (id) ON DELETE CASCADE,
    column_name            TEXT NOT NULL,
    data_type              TEXT NOT NULL
                           CHECK (data_type IN ('numeric', 'categorical', 'boolean', 'datetime', 'text')),
    null_count             INTEGER NOT NULL CHECK (null_count >= 0),
    unique_count           INTEGER NOT NULL CHECK (unique_count >= 0),
    sample_values          JSONB,
    is_potential_target    BOOLEAN NOT NULL DEFAULT FALSE,
    is_potential_treatment BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS column_info_dataset_idx ON column_info (dataset_id);

CREATE TABLE IF NOT EXISTS analyses (
    id                  SERIAL PRIMARY KEY,
    dataset_id          INTEGER NOT NULL REFERENCES datasets (id) ON DELETE CASCADE,
    name                TEXT NOT NULL CHECK (length(name) > 0),
    target_variable     TEXT NOT NULL,
    treatment_variables JSONB NOT NULL,
    control_variables   JSONB NOT NULL DEFAULT '[]'::jsonb,
    method              TEXT NOT NULL CHECK (method IN ('doubleml', 'causalml', 'econml', 'pywhy')),
    status              TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'running', 'completed', 'failed')),
    results             JSONB,
    simple_explanation  TEXT,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at        TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS analyses_dataset_idx ON analyses (dataset_id);
"""

# Columns stored as JSONB; values are serialised on write and decoded on read.
JSON_COLUMNS = {
    "datasets": {"sample_rows"},
    "column_info": {"sample_values"},
    "analyses": {"treatment_variables", "control_variables", "results"},
}
