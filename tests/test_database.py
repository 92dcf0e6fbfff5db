import time
from recyclebin import database, history
import config


def test_item_rows(tmp_path, monkeypatch):
    tmp_db = tmp_path / "db.sqlite"
    # Ensure database module uses this test DB
    monkeypatch.setattr(config, "DB_PATH", str(tmp_db))
    database.init_db()

    now = time.time()
    database.upsert_item("a.txt", tmp_path / "trash" / "a.txt", "/home/me/a.txt", now, 12)
    row = database.get_item("a.txt")
    assert row == ("a.txt", str(tmp_path / "trash" / "a.txt"), "/home/me/a.txt", now, 12)

    # upsert replaces rather than duplicating
    database.upsert_item("a.txt", tmp_path / "trash" / "a.txt", None, now + 1, 13)
    rows = database.get_all_items()
    assert len(rows) == 1
    assert rows[0][2] is None
    assert rows[0][4] == 13

    database.delete_item("a.txt")
    assert database.get_item("a.txt") is None


def test_history_records(tmp_path):
    db = str(tmp_path / "history.db")
    database.init_db(db)
    database.add_history("trash", "notes.txt", "/home/me/notes.txt", db_path=db)
    database.add_history("restore", "notes.txt", "/out/notes.txt", db_path=db)

    records = history.get_history(limit=10, db_path=db)
    assert [r["action"] for r in records] == ["restore", "trash"]
    assert records[0]["name"] == "notes.txt"
    assert records[1]["detail"] == "/home/me/notes.txt"


def test_display_history(tmp_path, capsys):
    db = str(tmp_path / "history.db")
    database.init_db(db)
    history.display_history(db_path=db)
    assert "No history found." in capsys.readouterr().out

    database.add_history("purge", "junk.log", db_path=db)
    history.display_history(db_path=db)
    out = capsys.readouterr().out
    assert "PURGE: junk.log" in out


def test_integrity_check(tmp_path):
    db = tmp_path / "index.db"
    assert database.check_integrity(str(db)) == (True, "no_db")
    database.init_db(str(db))
    assert database.check_integrity(str(db)) == (True, "ok")

    garbage = tmp_path / "garbage.db"
    garbage.write_bytes(b"this is not an sqlite file" * 100)
    ok, _ = database.check_integrity(str(garbage))
    assert ok is False
