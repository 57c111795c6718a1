"""
Create the history table if it does not exist yet.

Run once against a fresh database:
    python -m backend.database.init_db
"""

import logging
import sys

from backend.database.db_connection import Database, DATABASE_URL

HISTORY_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS history (
        history_id SERIAL PRIMARY KEY,
        kind VARCHAR(20) NOT NULL CHECK (kind IN ('description', 'generation')),
        input_image_prefix TEXT NOT NULL,
        prompt TEXT,
        result JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
"""

HISTORY_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS history_created_at_idx ON history (created_at);
"""


def init_db(database: Database) -> None:
    """
    Apply the history schema.

    Args:
        database (Database): An opened database handle.
    """
    with database.connection() as conn:
        with conn.cursor() as cur:
            cur.execute(HISTORY_TABLE_SQL)
            cur.execute(HISTORY_INDEX_SQL)
    logging.info("History table is ready.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    db = Database(DATABASE_URL)
    try:
        db.open()
        init_db(db)
    except Exception as e:
        logging.error(f"Database initialisation failed: {e}")
        sys.exit(1)
    finally:
        db.close()
