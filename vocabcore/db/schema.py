"""SQL schema for the vocabulary database."""

DB_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS collections (
    id VARCHAR PRIMARY KEY,
    title VARCHAR NOT NULL DEFAULT '',
    list_id VARCHAR,
    position INTEGER NOT NULL DEFAULT 0,
    modified_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS word_pairs (
    collection_id VARCHAR NOT NULL,
    word_index INTEGER NOT NULL,
    id VARCHAR NOT NULL,
    source VARCHAR NOT NULL,
    target VARCHAR NOT NULL,
    pos VARCHAR,
    explanation VARCHAR,
    example VARCHAR,
    conjugation_json VARCHAR,
    bucket VARCHAR NOT NULL DEFAULT 'New',
    next_review_at TIMESTAMP NOT NULL,
    last_reviewed_at TIMESTAMP
);

-- Rows of a collection are replaced as a whole, so (collection_id, word_index)
-- carries no unique constraint.
CREATE INDEX IF NOT EXISTS idx_word_pairs_collection ON word_pairs(collection_id);
CREATE INDEX IF NOT EXISTS idx_word_pairs_next_review_at ON word_pairs(next_review_at);
"""
