"""
Database connection helpers
"""

import logging
from typing import Tuple

from sqlalchemy import Column, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DB_URL = 'sqlite:///motion_meter.db'


class KeyValueEntry(Base):
    """One string value stored under an opaque string key."""
    __tablename__ = 'key_value_store'

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self):
        return f"<KeyValueEntry(key={self.key!r})>"


def get_db_connection(url: str = DEFAULT_DB_URL, echo: bool = False) -> Tuple[Engine, Session]:
    """
    Create an engine and session, creating tables if needed.

    Args:
        url: SQLAlchemy database URL
        echo: Log generated SQL

    Returns:
        (engine, session) tuple
    """
    engine = create_engine(url, echo=echo)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    logger.info(f"✓ Connected to {engine.url.render_as_string(hide_password=True)}")
    return engine, session
