import logging

from sqlalchemy import inspect, select, text, update
from sqlalchemy.exc import SQLAlchemyError

from src.api.streak import day_index
from src.db.models import Base, Note

logger = logging.getLogger("food_journal.migrations")

notes_table = Note.__table__


def _add_day_index_column(conn):
    columns = {column["name"] for column in inspect(conn).get_columns("notes")}
    if "day_diff_from_epoch" not in columns:
        conn.execute(text("ALTER TABLE notes ADD COLUMN day_diff_from_epoch INTEGER"))
        logger.info("Added notes.day_diff_from_epoch column")


def _backfill_day_index(conn) -> int:
    rows = conn.execute(
        select(notes_table.c.id, notes_table.c.created_at).where(
            notes_table.c.day_diff_from_epoch.is_(None),
            notes_table.c.created_at.is_not(None),
        )
    ).all()
    for note_id, created_at in rows:
        conn.execute(
            update(notes_table)
            .where(notes_table.c.id == note_id)
            .values(day_diff_from_epoch=day_index(created_at))
        )
    return len(rows)


# PUBLIC_INTERFACE
def run_migrations(engine) -> bool:
    """
    Create and upgrade the schema in a single transaction.

    Safe to run on every startup: tables are only created when missing, the
    day index column is only added to legacy tables, and only rows without a
    day index are backfilled. On failure the transaction is rolled back, the
    error is logged and False is returned so the caller can keep serving.
    """
    try:
        with engine.begin() as conn:
            Base.metadata.create_all(bind=conn)
            _add_day_index_column(conn)
            backfilled = _backfill_day_index(conn)
    except SQLAlchemyError:
        logger.exception("Error executing schema migrations, transaction rolled back")
        return False
    logger.info("Tables created and columns updated successfully (%d notes backfilled)", backfilled)
    return True
