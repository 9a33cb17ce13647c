from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from faucet.config import get_settings

SQLALCHEMY_DATABASE_URL = get_settings().database_url

# SQLite connections are shared between the event loop and FastAPI's threadpool.
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a session for one request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
