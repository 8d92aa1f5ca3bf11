from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from performance_analytics.core.config import settings

# Support both PostgreSQL and SQLite via centralized settings
DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("postgresql"):
    engine = create_engine(DATABASE_URL)
else:
    # SQLite configuration for local development/testing
    engine = create_engine(
        DATABASE_URL, connect_args={"check_same_thread": False}
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """
    Session Provider: Provides a read session per request.
    The analytics core never writes, so no commit happens here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    """
    Registers the read models and creates any missing tables.
    Called once during the application startup lifespan.
    """
    from performance_analytics.models import user, department, team, okr, feedback  # noqa: F401
    Base.metadata.create_all(bind=engine)
