import logging
import sys

from team_planner.config.settings import get_settings


def setup_logging() -> logging.Logger:
    """Configure application-wide logging."""
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Re-importing the app (tests, reloaders) must not stack handlers.
    if not any(h.get_name() == "team_planner" for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name("team_planner")
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger
