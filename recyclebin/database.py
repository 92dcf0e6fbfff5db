import logging
import sqlite3
import os
import time

import config

SCHEMA_VERSION = "1"


def get_connection(db_path=None):
    # allow cross-thread use + wait for lock release
    conn = sqlite3.connect(db_path or config.DB_PATH, timeout=30, check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL;")  # better concurrency
    return conn


def init_db(db_path=None):
    db_path = db_path or config.DB_PATH
    parent = os.path.dirname(os.path.abspath(db_path))
    os.makedirs(parent, exist_ok=True)

    conn = get_connection(db_path)
    cur = conn.cursor()

    # --- Items table (sidecar: original source + timestamp per logical name) ---
    cur.execute("""
        CREATE TABLE IF NOT EXISTS items (
            name TEXT PRIMARY KEY,
            stored_path TEXT NOT NULL,
            original_source TEXT,
            trashed_at REAL NOT NULL,
            size INTEGER
        )
    """)

    # --- History table ---
    cur.execute("""
        CREATE TABLE IF NOT EXISTS history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp REAL NOT NULL,
            action TEXT NOT NULL CHECK(action IN ('trash', 'restore', 'purge')),
            name TEXT NOT NULL,
            detail TEXT
        )
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_history_name ON history(name)")

    # add a small meta table to track schema version
    cur.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)
    cur.execute("INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)", (SCHEMA_VERSION,))

    conn.commit()
    conn.close()


def check_integrity(db_path=None):
    """Run PRAGMA integrity_check and return (True, "ok") if ok else (False, details)."""
    db_path = db_path or config.DB_PATH
    if not os.path.exists(db_path):
        # No DB -> treat as OK (will be created by init_db)
        return True, "no_db"
    try:
        conn = sqlite3.connect(db_path, timeout=10)
        cur = conn.cursor()
        cur.execute("PRAGMA integrity_check;")
        rows = cur.fetchall()
        conn.close()
    except sqlite3.DatabaseError as e:
        logging.exception("DB integrity check failed: %s", e)
        return False, str(e)
    # integrity_check returns [('ok',)]
    if rows and rows[0][0] == "ok":
        return True, "ok"
    return False, rows


# --- Items ---
def upsert_item(name, stored_path, original_source, trashed_at, size, db_path=None):
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO items (name, stored_path, original_source, trashed_at, size)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(name) DO UPDATE SET
            stored_path=excluded.stored_path,
            original_source=excluded.original_source,
            trashed_at=excluded.trashed_at,
            size=excluded.size
        """,
        (name, str(stored_path), original_source, trashed_at, size),
    )
    conn.commit()
    conn.close()


def get_item(name, db_path=None):
    """Return (name, stored_path, original_source, trashed_at, size) or None."""
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute(
        "SELECT name, stored_path, original_source, trashed_at, size FROM items WHERE name=?",
        (name,),
    )
    row = cur.fetchone()
    conn.close()
    return row


def get_all_items(db_path=None):
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute("SELECT name, stored_path, original_source, trashed_at, size FROM items ORDER BY name")
    rows = cur.fetchall()
    conn.close()
    return rows


def delete_item(name, db_path=None):
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute("DELETE FROM items WHERE name=?", (name,))
    conn.commit()
    conn.close()


# --- History ---
def add_history(action, name, detail=None, db_path=None):
    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute(
        "INSERT INTO history (timestamp, action, name, detail) VALUES (?, ?, ?, ?)",
        (time.time(), action, name, detail),
    )
    conn.commit()
    conn.close()


def get_history(limit=None, db_path=None):
    conn = get_connection(db_path)
    cur = conn.cursor()
    if limit:
        cur.execute("SELECT * FROM history ORDER BY id DESC LIMIT ?", (limit,))
    else:
        cur.execute("SELECT * FROM history ORDER BY id DESC")
    rows = cur.fetchall()
    conn.close()
    return rows
