import importlib
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from mobileorder.config import settings

log = logging.getLogger("db")

DATABASE_URL = settings.DATABASE_URL
engine = create_engine(DATABASE_URL, future=True, echo=False)
# expire_on_commit=False: results built inside a transaction stay readable after it closes
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
Base = declarative_base()

# every module that declares tables; imported before create_all so metadata is populated
MODEL_MODULES = [
    "mobileorder.models.user",
    "mobileorder.models.shop",
    "mobileorder.models.item",
    "mobileorder.models.order",
]


def import_models():
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(reset: bool = False, bind=None):
    """
    Initialize DB schema.

    Drops and recreates every table when `reset` is true or the RESET_DB env var
    is set to 1/true/yes; otherwise only missing tables are created.
    """
    bind = bind or engine
    import_models()

    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    if reset or env_reset:
        log.info("Resetting database (drop_all)")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    log.info("Database initialized")


def get_tx_manager():
    # imported here: utils.transactions pulls in the repositories, which import the models
    from mobileorder.utils.transactions import TransactionManager

    return TransactionManager(SessionLocal)
