# app/database.py
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Postgres connection (via Supabase pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients, so each backend
# process keeps a single connection.
#
# Any other URL (sqlite for local runs / tests) uses plain engine options.
# ---------------------------------------------------------


def _is_postgres(url: str) -> bool:
    return url.startswith("postgres")


def build_engine(db_url: str, echo: bool = False):
    """
    Build the SQLAlchemy engine for the given URL.
    """
    if not _is_postgres(db_url):
        return create_engine(db_url, echo=echo)

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
