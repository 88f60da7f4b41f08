from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .models import Base
from termcolor import cprint
from src.token_tracker.config import DATABASE_URL

# The connect_args are needed for SQLite
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db():
    Base.metadata.create_all(bind=engine)
    cprint("DB initialization successful!", "green")

def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
