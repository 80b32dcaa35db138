"""Generate database sessions"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from gamehub.core.config import Settings
from gamehub.db.schema import Base


def build_engine(settings: Settings) -> Engine:
    connect_args = (
        {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
    )
    engine = create_engine(settings.database_url, connect_args=connect_args)
    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def build_sessionmaker(settings: Settings) -> sessionmaker[Session]:
    return sessionmaker(bind=build_engine(settings))
