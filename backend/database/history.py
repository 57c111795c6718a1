"""
Append-only request history.

Each describe/generate call leaves one row in the `history` table. Rows are
never updated or deleted by the service, and only a short prefix of the
uploaded image is kept.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from psycopg2.extras import Json
from dotenv import load_dotenv

from backend.database.db_connection import Database

load_dotenv()

HISTORY_IMAGE_PREFIX_LENGTH = int(os.getenv("HISTORY_IMAGE_PREFIX_LENGTH", 100))

KIND_DESCRIPTION = "description"
KIND_GENERATION = "generation"
VALID_KINDS = (KIND_DESCRIPTION, KIND_GENERATION)


@dataclass(frozen=True)
class HistoryRecord:
    """One persisted request. Frozen, so `kind` cannot change once built."""

    kind: str
    input_image_prefix: str
    result: Any
    prompt: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.kind not in VALID_KINDS:
            raise ValueError(f"Unknown history kind: {self.kind}")


def build_record(
    kind: str,
    image: str,
    result: Any,
    prompt: Optional[str] = None,
    prefix_length: Optional[int] = None,
) -> HistoryRecord:
    """
    Build a history record, keeping only a bounded prefix of the image.

    Args:
        kind (str): "description" or "generation".
        image (str): The encoded image exactly as the client sent it.
        result: Filtered description text, or {"imageUrl": ...}.
        prompt (str, optional): Generation prompt.
        prefix_length (int, optional): Overrides HISTORY_IMAGE_PREFIX_LENGTH.

    Returns:
        HistoryRecord: Ready to be appended.
    """
    if prefix_length is None:
        prefix_length = HISTORY_IMAGE_PREFIX_LENGTH
    return HistoryRecord(
        kind=kind,
        input_image_prefix=image[:max(prefix_length, 0)],
        result=result,
        prompt=prompt,
    )


def append_history(database: Database, record: HistoryRecord) -> int:
    """
    Insert a record into the history table.

    Returns:
        int: The new history_id.

    Raises:
        psycopg2.Error: If the insert fails.
    """
    sql = """
        INSERT INTO history (kind, input_image_prefix, prompt, result, created_at)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING history_id;
    """
    with database.connection() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (
                record.kind,
                record.input_image_prefix,
                record.prompt,
                Json(record.result),
                record.created_at,
            ))
            row = cur.fetchone()
    return row["history_id"]
