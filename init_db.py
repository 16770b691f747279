"""Create every table and the default roles."""

import structlog

from app.backend.src.core.logging import configure_logging
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.seed import seed_roles

LOGGER = structlog.get_logger(__name__)


def init_db() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    with session_scope() as session:
        created = seed_roles(session)
    LOGGER.info("database_initialized", url=engine.url.render_as_string(hide_password=True), roles_created=created)


if __name__ == "__main__":
    configure_logging()
    init_db()
