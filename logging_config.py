"""Console logging for the ``transaction_report`` logger tree."""

import logging
import sys

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "transaction_report"


def setup_logging(level: str = "INFO") -> logging.Logger:
	"""Attach a single stderr handler to the project logger.

	Repeated calls only adjust the level, so app factories and tests can
	call this freely.
	"""
	root_logger = logging.getLogger(ROOT_LOGGER)
	root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

	if root_logger.handlers:
		return root_logger

	console_handler = logging.StreamHandler(sys.stderr)
	console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
	root_logger.addHandler(console_handler)
	root_logger.propagate = False
	return root_logger
