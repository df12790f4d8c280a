from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

from .config import Settings
from .logging_config import get_logger
from .storage.interface import StoragePort
from .storage.memory import InMemoryStorage
from .storage.sql import SQLStorage


logger = get_logger("database")


def make_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 60},
            poolclass=NullPool,  # one connection per session, no pooled write locks
        )
        # Configure SQLite pragmas to reduce locking
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
                conn.exec_driver_sql("PRAGMA busy_timeout=60000;")
        except OperationalError:
            # Database momentarily locked (e.g. reloader startup); the pragmas are an optimization.
            logger.warning("could not apply SQLite pragmas to %s", database_url)
        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    from .models import category, session, transaction, user  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(engine)


def build_storage(config: Settings) -> StoragePort:
    """Pick the storage implementation named by ``STORAGE_TYPE``."""
    kind = config.storage_type.strip().lower()
    if kind == "memory":
        storage: StoragePort = InMemoryStorage()
    elif kind == "sql":
        engine = make_engine(config.database_url, echo=config.sql_echo)
        init_db(engine)
        storage = SQLStorage(engine)
    else:
        raise ValueError(f"Unknown STORAGE_TYPE {config.storage_type!r}, expected 'sql' or 'memory'")

    logger.info("using %s storage", storage.get_storage_type())
    return storage
