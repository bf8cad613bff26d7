from __future__ import annotations

import logging

from calendar_planner.core.event_store import EventStore
from calendar_planner.infra.config import Settings, load_settings
from calendar_planner.infra.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def bootstrap(settings: Settings | None = None) -> EventStore:
    """Configure logging and return a loaded store for a front end to drive."""
    if settings is None:
        try:
            settings = load_settings()
        except RuntimeError as exc:
            LOGGER.exception("Startup failed: %s", exc)
            raise SystemExit(str(exc)) from exc
    configure_logging(level=settings.log_level, log_file=settings.log_file)
    store = EventStore.from_settings(settings)
    summary = store.load()
    LOGGER.info(
        "startup.ready data_dir=%s events=%s recurrences=%s skipped=%s",
        settings.data_dir,
        summary.events,
        summary.recurrences,
        summary.skipped,
    )
    return store
