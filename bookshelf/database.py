from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import settings

# Ensure DATABASE_URL is set
if not settings.DATABASE_URL:
    raise ValueError("DATABASE_URL is not set in .env file")

engine_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
else:
    engine_args.update({"pool_pre_ping": True, "pool_recycle": 3600})

engine = create_engine(settings.DATABASE_URL, **engine_args)

# Objects stay readable after commit so services can hand them back to routers
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables on ``bind`` (the configured engine by default)."""
    from . import models  # noqa: F401  registers the tables on Base.metadata
    Base.metadata.create_all(bind=bind or engine)
