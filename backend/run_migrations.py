"""Simple migration runner for SQLite using provided SQL files in migrations/"""
from pathlib import Path
import sqlite3
import sys

BASE = Path(__file__).parent
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))


def _sqlite_path() -> Path:
    """Resolve the database file from DATABASE_URL (SQLite only)."""
    if str(BASE) not in sys.path:
        sys.path.insert(0, str(BASE))
    from registry.config import settings
    if not settings.is_sqlite:
        raise SystemExit(f"run_migrations only supports SQLite, got {settings.DATABASE_URL}")
    path = settings.DATABASE_URL.split(":///", 1)[-1]
    if not path or path == ":memory:" or settings.DATABASE_URL == "sqlite://":
        raise SystemExit("refusing to migrate an in-memory database")
    return Path(path)


def run():
    """Execute SQL migration files against the local SQLite database.

    The function applies every `migrations/*.sql` file in lexical
    order. Files are written to be idempotent, so re-running is safe.
    """
    db_path = _sqlite_path()
    print("Using database:", db_path)
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    for m in MIGRATIONS:
        print("Applying:", m.name)
        sql = m.read_text(encoding="utf-8")
        cur.executescript(sql)
    conn.commit()
    conn.close()
    print("Migrations applied.")

if __name__ == '__main__':
    run()
