import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from seo_remediation import config

logger = logging.getLogger(__name__)


def make_engine(url: str = config.DATABASE_URL, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, **kwargs)


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    # Register the ORM tables before creating them
    from seo_remediation import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
