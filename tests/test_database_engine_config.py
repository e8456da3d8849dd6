import os


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    """SQLite engines disable the same-thread check and skip pool sizing."""
    # Import lazily so monkeypatch can affect env usage deterministically.
    from stockpilot.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./stockpilot.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_reads_pool_settings(monkeypatch):
    """Postgres engines read pool sizing from the environment."""
    from stockpilot.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "7")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "3")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "15")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 7
    assert kwargs["max_overflow"] == 3
    assert kwargs["pool_timeout"] == 15


def test_debug_enables_echo(monkeypatch):
    """DEBUG toggles SQL echo."""
    from stockpilot.database import database as db

    monkeypatch.setenv("DEBUG", "true")
    assert db.get_engine_kwargs("sqlite:///./stockpilot.db")["echo"] is True
    monkeypatch.setenv("DEBUG", "false")
    assert db.get_engine_kwargs("sqlite:///./stockpilot.db")["echo"] is False


def test_sqlite_pragmas_listener_is_guarded():
    """The pragma hook only applies to SQLite URLs."""
    from stockpilot.database import database as db

    assert db._is_sqlite_url("sqlite:///./stockpilot.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_create_all_builds_state_blob_table(tmp_path):
    """A fresh SQLite file gets the automation_state_blobs table from the declarative models."""
    from sqlalchemy import create_engine, inspect
    from stockpilot.database import database as db
    from stockpilot.database import models  # noqa: F401

    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    db.Base.metadata.create_all(bind=engine)

    columns = {c["name"] for c in inspect(engine).get_columns("automation_state_blobs")}
    assert columns == {"workspace_key", "stream", "payload", "updated_at"}
    assert os.path.exists(tmp_path / "fresh.db")
