import logging
import os

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine, Session

from core.errors import StorageError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Connects app to the database. DATABASE_URL wins; otherwise the PostgreSQL
# pieces are assembled; otherwise a local SQLite file is used.

DATABASE_URL = os.getenv("DATABASE_URL")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")  # Default PostgreSQL port
DB_NAME = os.getenv("DB_NAME")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
INSTANCE_CONNECTION_NAME = os.getenv("INSTANCE_CONNECTION_NAME")  # For Cloud SQL Proxy

required_vars_for_socket = ["DB_NAME", "DB_USER", "DB_PASSWORD", "INSTANCE_CONNECTION_NAME"]

if not DATABASE_URL:
    if INSTANCE_CONNECTION_NAME:
        missing_vars = [var for var in required_vars_for_socket if not os.getenv(var)]
        if missing_vars:
            raise ValueError(f"Missing required environment variables for Cloud SQL (socket): {', '.join(missing_vars)}")
        # Cloud SQL over a Unix socket
        DATABASE_URL = f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@/{DB_NAME}?host=/cloudsql/{INSTANCE_CONNECTION_NAME}"
    elif DB_HOST:
        if not (DB_NAME and DB_USER and DB_PASSWORD):
            raise ValueError("DB_HOST is set but DB_NAME, DB_USER or DB_PASSWORD is missing")
        DATABASE_URL = f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    else:
        DATABASE_URL = "sqlite:///./shift_scheduler.db"


def build_engine(url: str):
    """Create an engine; SQLite needs cross-thread access and in-memory needs one shared connection."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


# The Wire / Link That Lets Us Pass Data from App -> db
engine = build_engine(DATABASE_URL)


# Getter for this Wire, modified for FastAPI dependency injection
def get_session():
    with Session(engine) as session:
        yield session


def execute_or_raise(session: Session, statement):
    """Execute a write statement, or roll back and surface a generic StorageError."""
    try:
        return session.execute(statement)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database write failed")
        raise StorageError()


def commit_or_raise(session: Session) -> None:
    """Commit, or roll back and surface a generic StorageError."""
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database commit failed")
        raise StorageError()
