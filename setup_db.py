# File: setup_db.py

import logging
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import Base
from dispatchwatch.core.database.connection import engine

# Import all models so they register on Base.metadata
import dispatchwatch.features.storage.data.sql_models
import dispatchwatch.features.post_processing.data.sql_models
import dispatchwatch.features.hospital_calls.data.sql_models
import dispatchwatch.features.incidents.data.sql_models

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("setup_db")


def main():
    settings.ensure_dirs()
    Base.metadata.create_all(bind=engine)
    logger.info(f"✅ Created {len(Base.metadata.tables)} tables on {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
