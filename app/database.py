"""
Database connection setup
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings

Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets thread sharing and working SAVEPOINTs."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live per connection, so every session must share one
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **kwargs)

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it ourselves
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create the prices table if it does not exist."""
    import app.models  # noqa: F401  — register models
    Base.metadata.create_all(bind=engine)


def reset_tables(engine: Engine) -> None:
    """Drop and recreate every table (environment preparation)."""
    import app.models  # noqa: F401  — register models
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = build_session_factory(engine)


def get_db():
    """Database session dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Session factory dependency, for work that manages its own transactions"""
    return SessionLocal
