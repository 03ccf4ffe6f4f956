# agenda/db.py

import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from agenda.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,  # required for SQLite + FastAPI
            "timeout": 30,  # wait for the writer lock instead of failing
        }

    new_engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    if new_engine.dialect.name == "sqlite":
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


# Engine = connection to the database
engine = build_engine(settings.database_url, echo=settings.sql_echo)


def create_db_and_tables(bind: Optional[Engine] = None) -> None:
    # Import registers the tables and the overlap constraint DDL
    from agenda import models  # noqa: F401

    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    logger.info("Database ready (%s)", bind.dialect.name)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
