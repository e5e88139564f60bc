import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

# Applied in order, each at most once. Migration N is pending while
# PRAGMA user_version < N. Append only; never edit a shipped entry.
MIGRATIONS = [
    # 1
    """
    CREATE TABLE webhooks_data (
        created_at TEXT DEFAULT '' NOT NULL,
        updated_at TEXT DEFAULT '' NOT NULL,
        path TEXT DEFAULT '' NOT NULL,
        headers TEXT DEFAULT '' NOT NULL,
        body TEXT DEFAULT '' NOT NULL,
        visible_at TEXT DEFAULT '' NOT NULL
    )
    """,
    # 2
    "CREATE INDEX webhooks_data_visible_at ON webhooks_data (visible_at)",
]


def schema_version(db):
    return db.execute("PRAGMA user_version").fetchone()[0]


def apply_migrations(db, migrations=MIGRATIONS):
    current = schema_version(db)
    pending = len(migrations) - current
    logger.info("schema version %d, %d pending migration(s)", current, max(pending, 0))

    for version, ddl in enumerate(migrations, start=1):
        if version <= current:
            continue
        with db:
            db.execute("BEGIN")
            db.execute(ddl)
            db.execute(f"PRAGMA user_version = {version}")
        logger.info("applied migration %d", version)


def init_db(path):
    if path != ":memory:":
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    db = sqlite3.connect(path, check_same_thread=False)
    if path != ":memory:":
        db.execute("PRAGMA journal_mode=WAL")
    apply_migrations(db)
    return db
