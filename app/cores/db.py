"""
Configuración de SQLAlchemy para trabajar con base de datos de forma asincrónica.
SQLite (aiosqlite) por defecto; la URL se toma de settings.
"""

from contextlib import asynccontextmanager
from datetime import datetime, UTC

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from app.configs.settings import settings

DATABASE_URL = settings.SQLALCHEMY_DATABASE_URI

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite requiere check_same_thread=False para async
    connect_args = {"check_same_thread": False}


def configure_sqlite(target_engine: AsyncEngine) -> None:
    """
    Activa WAL en cada conexión SQLite.

    Con WAL una transacción de lectura conserva su snapshot mientras otras
    conexiones siguen escribiendo; sin WAL esas escrituras esperarían al lector.
    """
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine.sync_engine, "connect")
    def set_journal_mode(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


engine = create_async_engine(
    DATABASE_URL,
    connect_args=connect_args,
    echo=False
)
configure_sqlite(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

Base = declarative_base()


def utc_now() -> datetime:
    """Naive UTC timestamp, the format every DateTime column is stored in."""
    return datetime.now(UTC).replace(tzinfo=None)


@asynccontextmanager
async def atomic(db: AsyncSession, snapshot: bool = False):
    """
    Opens an explicit transaction on `db`, committing on exit and rolling back on error.

    Any implicit transaction left open by earlier reads in the same request
    (e.g. loading the current user) is closed first so `begin()` can start clean.

    With `snapshot=True` every read inside the block sees the same committed state.
    The sqlite driver only emits BEGIN before a write, so it is sent explicitly;
    other databases get a REPEATABLE READ transaction.
    """
    if db.in_transaction():
        await db.commit()
    async with db.begin():
        if snapshot:
            if db.get_bind().dialect.name == "sqlite":
                await db.execute(text("BEGIN"))
            else:
                await db.connection(execution_options={"isolation_level": "REPEATABLE READ"})
        yield db
