"""Initialize database tables."""
from typing import Optional
import logging

from sqlmodel import SQLModel
from sqlalchemy.engine import Engine

import dispatch_app.models  # noqa: F401  registers tables on the metadata
from dispatch_app.db.config import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(engine: Optional[Engine] = None):
    """Create all tables in the database."""
    logger.info("Creating all tables...")
    SQLModel.metadata.create_all(engine or default_engine)
    logger.info("Tables created successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
