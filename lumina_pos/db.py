from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

# Base para modelos
Base = declarative_base()


def make_engine(url: str):
    """Engine con timeout alto (contención ligera) y PRAGMAs en SQLite."""
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 60} if is_sqlite else {}
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA busy_timeout=60000;")
                cur.execute("PRAGMA foreign_keys=ON;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            finally:
                cur.close()

    return engine


def make_sessionmaker(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def create_all(engine) -> None:
    # IMPORTA MODELOS antes de create_all
    from .models import pos as _pos_models  # noqa: F401
    from .models import pos_session as _pos_session_models  # noqa: F401
    from .models import product as _product_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
