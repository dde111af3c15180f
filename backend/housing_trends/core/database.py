from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from housing_trends.core.config import settings

# Create SQLAlchemy engine
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
    pool_recycle=300,
)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for SQLAlchemy models
Base = declarative_base()


def init_db(bind=None):
    """Create all tables that do not exist yet"""
    # Import models so they are registered on the metadata
    from housing_trends.db import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

