#!/usr/bin/env python3
"""
Lexical Store
One row per canonical key in ``lexical_records``; the nested entry tree lives in
a JSONB column so the whole record round-trips as a document.

Writes that read-modify-write a record (merges and translation backfills) lock
the affected rows with ``SELECT ... FOR UPDATE`` inside a single transaction so
concurrent writers for the same key are serialized instead of overwriting each
other.
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from .canonicalizer import merge_record, normalize
from .database_manager import DatabaseManager, get_database_manager
from .models import IngestPayload, LexicalRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = "key, entries, variants, symbol, parts_of_speech, created_at, updated_at"

# JSONPath locations of nested senses/examples; $ids is a JSON array of ids
SENSE_PATHS = (
    '$[*].senses[*] ? (@.id == $ids[*])',
    '$[*].idioms[*].senses[*] ? (@.id == $ids[*])',
    '$[*].phrasal_verb_senses[*].senses[*] ? (@.id == $ids[*])',
)
EXAMPLE_PATHS = (
    '$[*].senses[*].examples[*] ? (@.id == $ids[*])',
    '$[*].idioms[*].senses[*].examples[*] ? (@.id == $ids[*])',
    '$[*].phrasal_verb_senses[*].senses[*].examples[*] ? (@.id == $ids[*])',
)
NESTED_PATHS = {'sense': SENSE_PATHS, 'example': EXAMPLE_PATHS}

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS lexical_records (
    key TEXT PRIMARY KEY,
    entries JSONB NOT NULL DEFAULT '[]'::jsonb,
    variants JSONB NOT NULL DEFAULT '[]'::jsonb,
    symbol TEXT NOT NULL DEFAULT '',
    parts_of_speech JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_lexical_records_entries ON lexical_records USING GIN (entries jsonb_path_ops)",
    "CREATE INDEX IF NOT EXISTS idx_lexical_records_variants ON lexical_records USING GIN (variants)",
    "CREATE INDEX IF NOT EXISTS idx_lexical_records_symbol ON lexical_records (symbol)",
    "CREATE INDEX IF NOT EXISTS idx_lexical_records_created_at ON lexical_records (created_at)",
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally"""
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _nested_predicate(kind: str) -> str:
    paths = NESTED_PATHS[kind]
    return " OR ".join(
        "jsonb_path_exists(entries, %(path{0})s::jsonpath, %(vars)s)".format(i)
        for i in range(len(paths))
    )


def _nested_params(kind: str, ids: Iterable[str]) -> dict:
    params = {'vars': Jsonb({'ids': list(ids)})}
    for i, path in enumerate(NESTED_PATHS[kind]):
        params[f'path{i}'] = path
    return params


class LexicalStore:
    """PostgreSQL-backed document store for lexical records"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self._db_manager = db_manager

    @property
    def db(self) -> DatabaseManager:
        if self._db_manager is None:
            self._db_manager = get_database_manager()
        return self._db_manager

    def ensure_schema(self):
        """Create the schema, table and indexes if they do not exist"""
        schema = self.db.config_obj.schema
        with self.db.get_cursor() as cursor:
            if schema:
                cursor.execute(f'CREATE SCHEMA IF NOT EXISTS "{schema}"')
                cursor.execute(f'SET search_path TO "{schema}"')
            cursor.execute(SCHEMA_SQL)
            for statement in INDEX_SQL:
                cursor.execute(statement)
        logger.info(f"Lexical store schema ready (schema={schema or 'public'})")

    # ------------------------------------------------------------------
    # Reads

    def get(self, key: str) -> Optional[LexicalRecord]:
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute(f"SELECT {RECORD_COLUMNS} FROM lexical_records WHERE key = %s", (key,))
            row = cursor.fetchone()
        return LexicalRecord.from_row(row) if row else None

    def find_by_term(self, term: str) -> Optional[LexicalRecord]:
        """Record whose key equals the term or which lists it as a variant (case-insensitive)"""
        key = normalize(term)
        if not key:
            return None
        sql = f"""
        SELECT {RECORD_COLUMNS}
        FROM lexical_records r
        WHERE r.key = %(key)s
           OR EXISTS (
                SELECT 1 FROM jsonb_array_elements_text(r.variants) v
                WHERE lower(v) = lower(%(term)s) OR lower(v) = %(key)s
           )
        ORDER BY (r.key = %(key)s) DESC, r.key
        LIMIT 1
        """
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute(sql, {'key': key, 'term': term.strip()})
            row = cursor.fetchone()
        return LexicalRecord.from_row(row) if row else None

    def prefix_candidates(self, prefix: str) -> List[LexicalRecord]:
        """Records where the key, a variant or an entry headword starts with the prefix"""
        sql = f"""
        SELECT {RECORD_COLUMNS}
        FROM lexical_records r
        WHERE r.key ILIKE %(pattern)s
           OR EXISTS (SELECT 1 FROM jsonb_array_elements_text(r.variants) v
                      WHERE v ILIKE %(pattern)s)
           OR EXISTS (SELECT 1 FROM jsonb_array_elements(r.entries) e
                      WHERE e->>'headword' ILIKE %(pattern)s)
        ORDER BY r.key
        """
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute(sql, {'pattern': escape_like(prefix) + '%'})
            rows = cursor.fetchall()
        return [LexicalRecord.from_row(row) for row in rows]

    def idiom_candidates(self, pattern: str) -> List[LexicalRecord]:
        """Records holding at least one idiom matching a case-insensitive regex"""
        sql = f"""
        SELECT {RECORD_COLUMNS}
        FROM lexical_records r
        WHERE EXISTS (
            SELECT 1
            FROM jsonb_array_elements(r.entries) e,
                 jsonb_array_elements(COALESCE(e->'idioms', '[]'::jsonb)) i
            WHERE i->>'idiom_text' ~* %(pattern)s
        )
        ORDER BY r.key
        """
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute(sql, {'pattern': pattern})
            rows = cursor.fetchall()
        return [LexicalRecord.from_row(row) for row in rows]

    def records_containing(self, kind: str, ids: Iterable[str]) -> List[LexicalRecord]:
        """Records holding a sense or example ("sense"/"example") with one of the ids"""
        ids = list(ids)
        if not ids:
            return []
        sql = f"""
        SELECT {RECORD_COLUMNS} FROM lexical_records
        WHERE {_nested_predicate(kind)}
        ORDER BY key
        """
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute(sql, _nested_params(kind, ids))
            rows = cursor.fetchall()
        return [LexicalRecord.from_row(row) for row in rows]

    def list_records(self, offset: int, limit: int) -> Tuple[int, List[LexicalRecord]]:
        with self.db.get_cursor(dictionary=True) as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM lexical_records")
            total = cursor.fetchone()['total']
            cursor.execute(
                f"SELECT {RECORD_COLUMNS} FROM lexical_records ORDER BY key LIMIT %s OFFSET %s",
                (limit, offset),
            )
            rows = cursor.fetchall()
        return total, [LexicalRecord.from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Writes

    def merge_entries(self, key: str, payload: IngestPayload) -> LexicalRecord:
        """Atomically merge new entries and variants into the record for ``key``"""
        with self.db.get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(
                    "INSERT INTO lexical_records (key) VALUES (%s) ON CONFLICT (key) DO NOTHING",
                    (key,),
                    prepare=False,
                )
                created = cursor.rowcount == 1
                cursor.execute(
                    f"SELECT {RECORD_COLUMNS} FROM lexical_records WHERE key = %s FOR UPDATE",
                    (key,),
                    prepare=False,
                )
                row = cursor.fetchone()
                existing = None if created else LexicalRecord.from_row(row)
                merged = merge_record(existing, payload.entries, payload.variants, key=key)
                if created:
                    merged.created_at = row['created_at']
                self._write(cursor, merged)

        logger.info(
            f"{'Created' if created else 'Updated'} record '{key}' "
            f"({len(merged.entries)} entries, {len(merged.variants)} variants)"
        )
        return merged

    def apply_nested_update(self, kind: str, item_id: str,
                            mutate: Callable[[LexicalRecord], bool]) -> int:
        """Lock every record holding ``item_id`` and apply ``mutate`` to it.

        ``mutate`` edits the record in place and returns True when it changed
        something. Returns the number of records written back.
        """
        sql = f"""
        SELECT {RECORD_COLUMNS} FROM lexical_records
        WHERE {_nested_predicate(kind)}
        ORDER BY key
        FOR UPDATE
        """
        written = 0
        with self.db.get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, _nested_params(kind, [item_id]), prepare=False)
                for row in cursor.fetchall():
                    record = LexicalRecord.from_row(row)
                    if mutate(record):
                        cursor.execute(
                            "UPDATE lexical_records SET entries = %s, updated_at = now() WHERE key = %s",
                            (Jsonb([entry.to_dict() for entry in record.entries]), record.key),
                            prepare=False,
                        )
                        written += 1
        return written

    def _write(self, cursor, record: LexicalRecord):
        cursor.execute(
            """
            UPDATE lexical_records
            SET entries = %s, variants = %s, symbol = %s, parts_of_speech = %s, updated_at = %s
            WHERE key = %s
            """,
            (
                Jsonb([entry.to_dict() for entry in record.entries]),
                Jsonb(list(record.variants)),
                record.symbol,
                Jsonb(list(record.parts_of_speech)),
                record.updated_at,
                record.key,
            ),
            prepare=False,
        )
