from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

_engines: dict[str, Engine] = {}


def get_engine(database_url: str) -> Engine:
    engine = _engines.get(database_url)
    if engine is None:
        is_sqlite = database_url.startswith("sqlite")
        connect_args = {"check_same_thread": False} if is_sqlite else {}
        engine_kwargs: dict = {"pool_pre_ping": True, "connect_args": connect_args}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            # In-memory SQLite lives per connection; share one across threads.
            engine_kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **engine_kwargs)
        _engines[database_url] = engine
    return engine


def reset_engine_state() -> None:
    """Dispose and forget every cached engine (used on shutdown and by tests)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
