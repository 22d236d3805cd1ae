from __future__ import annotations

import logging
from logging.config import dictConfig

from settings.config import settings


def configure_logging(level: int | str | None = None) -> None:
	level = level if level is not None else settings.LOG_LEVEL
	if isinstance(level, str):
		level = logging.getLevelName(level.upper())
	formatter = "json" if settings.LOG_JSON else "standard"
	dictConfig(
		{
			"version": 1,
			"disable_existing_loggers": False,
			"formatters": {
				"standard": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
				"json": {"()": "pdf.json_logger.JsonFormatter"},
			},
			"handlers": {
				"console": {
					"class": "logging.StreamHandler",
					"formatter": formatter,
					"level": level,
				}
			},
			"loggers": {
				"": {"handlers": ["console"], "level": level},
				"uvicorn": {"handlers": ["console"], "level": level},
				"trading_statement": {"handlers": ["console"], "level": level, "propagate": False},
			},
		}
	)
