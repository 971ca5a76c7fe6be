"""
Database module

SQLAlchemy engine and session management for the snapshot cache
"""
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from rankfolio.core.exceptions import DatabaseError

# ORM base class
Base = declarative_base()


class DatabaseManager:
    """
    Database connection manager

    Usage:
        db = DatabaseManager("sqlite:///data/snapshots.db")

        with db.session() as session:
            session.execute(text("SELECT 1"))
    """

    _instance: "DatabaseManager | None" = None

    def __new__(cls, *args, **kwargs) -> "DatabaseManager":
        """Singleton"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(
        self,
        connection_string: str | None = None,
        pool_size: int = 5,
        pool_timeout: int = 30,
        echo: bool = False,
    ):
        if self._initialized:
            return

        self._connection_string = connection_string
        self._pool_size = pool_size
        self._pool_timeout = pool_timeout
        self._echo = echo

        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._initialized = True

    def _ensure_engine(self) -> Engine:
        """Create the engine lazily"""
        if self._engine is None:
            if self._connection_string is None:
                raise DatabaseError("Database connection string is not configured")

            # create the directory for file-backed SQLite
            if self._connection_string.startswith("sqlite:///"):
                db_path = Path(self._connection_string.replace("sqlite:///", ""))
                db_path.parent.mkdir(parents=True, exist_ok=True)

            if self._connection_string.startswith("sqlite"):
                # SQLite does not take pool_size
                self._engine = create_engine(
                    self._connection_string,
                    echo=self._echo,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_engine(
                    self._connection_string,
                    pool_size=self._pool_size,
                    pool_timeout=self._pool_timeout,
                    echo=self._echo,
                )

            self._session_factory = sessionmaker(bind=self._engine)

        return self._engine

    @property
    def engine(self) -> Engine:
        return self._ensure_engine()

    def get_session(self) -> Session:
        """New session (caller manages it)"""
        self._ensure_engine()
        if self._session_factory is None:
            raise DatabaseError("Session factory is not initialised")
        return self._session_factory()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Session context manager

        Commits on success, rolls back and raises DatabaseError on failure.
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Database operation failed: {e}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all_tables(self) -> None:
        """Create every table known to the ORM"""
        # models must be imported so they register on Base.metadata
        import rankfolio.core.models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def health_check(self) -> bool:
        """Connection check"""
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except DatabaseError:
            return False

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for tests)"""
        if cls._instance:
            cls._instance.close()
        cls._instance = None


def init_database_from_config() -> DatabaseManager:
    """Initialise from the `database` settings section"""
    from rankfolio.core.config import get_config

    config = get_config()
    db_config = config.get_section("database")

    return DatabaseManager(
        connection_string=db_config.get("connection_string"),
        pool_size=db_config.get("pool_size", 5),
        pool_timeout=db_config.get("pool_timeout", 30),
        echo=db_config.get("echo", False),
    )
