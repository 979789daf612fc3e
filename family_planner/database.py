from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from family_planner.config import DATABASE_URL, SQL_ECHO
from family_planner.db_models import Base


# SQLAlchemy setup, created on first use so the in-memory backend needs no database driver
@lru_cache(maxsize=1)
def get_engine():
    return create_engine(DATABASE_URL, echo=SQL_ECHO)


@lru_cache(maxsize=1)
def get_session_factory():
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or get_engine())
