"""Utils related to logging."""

import logging
import logging.config

from pagenotes.utils.file_utils import read_params


def setup_logging(level: str | int | None = None) -> None:
    """Sets up logging config. Needs to be called at the startup of the command line tool.

    All diagnostics go to standard output.

    Args:
        level (str | int | None, optional): Overrides the level from `pipeline_params.yml`. Defaults to None.
    """
    if level is None:
        level = read_params("pipeline_params.yml")["logging"]["level"]

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"simple": {"format": "%(asctime)s - %(levelname)s: %(message)s"}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {"root": {"level": level, "handlers": ["stdout"]}},
    }

    logging.config.dictConfig(log_config)
