from tortoise import Tortoise
from app.core.config import DB_URL
import logging
from logging import INFO

log = logging.getLogger(__name__)

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)

# Define all models modules for the ORM
MODELS_MODULES = [
    "app.models.payment_intent",
    "app.models.idempotency",
    "app.models.outbox",
]

async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Initializes the process-wide Tortoise connection pool and creates tables."""
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        if generate_schemas:
            # safe=True leaves existing tables alone
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"FATAL ERROR: Could not connect to database. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise

async def close_db():
    """Drains and closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
