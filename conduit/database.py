from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from conduit.config import settings
from conduit.middleware import install_query_counter


def make_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Build an async engine for *url* with the per-request query counter
    attached.

    SQLite does not enforce foreign keys unless asked to on every
    connection; the pragma is issued so ``ON DELETE CASCADE`` rules behave
    the same way they do on Postgres.  Transactions are begun explicitly so
    ``begin_nested`` savepoints nest inside them.
    """
    engine = create_async_engine(url, **kwargs)
    install_query_counter(engine)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _configure_connection(dbapi_connection, connection_record):
            # The driver's own BEGIN handling breaks SAVEPOINT; BEGIN is
            # emitted from the "begin" hook below instead.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Request-scoped unit of work.

    Services flush their writes into this session; the whole request is
    committed once the handler returns, or rolled back if it raises.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
