# src/thyroengine/log.py
import logging

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Route engine events through structlog. Call once from the host
    application; importing the engine never configures logging.
    """
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        cache_logger_on_first_use=False,
    )
