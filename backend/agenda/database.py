from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi import Request

# Execution option marking a session transaction that is going to write
BEGIN_IMMEDIATE = "agenda_begin_immediate"


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    SQLite: check_same_thread=False so FastAPI worker threads can share it,
    foreign keys switched on per connection, WAL for file databases,
    explicit BEGIN so savepoints work (per-slot inserts in generation) and
    BEGIN IMMEDIATE for transactions opened with begin_write(). In-memory
    databases share a single connection, otherwise every session would see
    an empty schema.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
    kwargs = {"connect_args": {"check_same_thread": False}}
    if in_memory:
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def enable_sqlite_fk(dbapi_connection, _):
        # SQLAlchemy emits BEGIN/SAVEPOINT itself (pysqlite would defer them)
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            # Readers never block the writer's commit
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def sqlite_begin(conn):
        # Write transactions take the RESERVED lock up front; a deferred BEGIN
        # upgraded from a read deadlocks against another upgrading session
        if conn.get_execution_options().get(BEGIN_IMMEDIATE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def begin_write(db: Session) -> None:
    """
    Start the session's next transaction as a write transaction.

    An open (read) transaction is committed first. On SQLite this emits
    BEGIN IMMEDIATE, so concurrent writers queue on the busy timeout instead
    of failing with "database is locked". Other dialects ignore the option.
    """
    if db.in_transaction():
        db.commit()
    db.connection(execution_options={BEGIN_IMMEDIATE: True})


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    from .models import Base
    Base.metadata.create_all(bind=engine)


# Dependency for FastAPI: the factory is injected by create_app()
def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
