"""
Structured logging configuration for the ingestion service.

Provides JSON-formatted logs for production and a readable format for local
development. Upload queue lines carry an ``[Upload <id>]`` prefix; in JSON
mode the id is also lifted into its own ``upload_id`` field so a single file
can be followed through the pipeline.
"""

import logging
import re
import sys
from typing import Any, Dict
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger

UPLOAD_PREFIX = re.compile(r"^\[Upload (?P<upload_id>[0-9a-f]+)\]")

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("urllib3", "botocore", "boto3", "httpx", "openai", "pdfminer", "PIL")

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(funcName)s %(message)s"
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, level and source location to every record.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')
        log_record['level'] = record.levelname
        log_record['logger'] = record.name

        match = UPLOAD_PREFIX.match(record.getMessage())
        if match:
            log_record['upload_id'] = match.group("upload_id")

        # Source location only where someone will go looking for it
        if record.levelno >= logging.WARNING:
            log_record['line'] = record.lineno
            log_record['pathname'] = record.pathname


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON lines for production, human-readable lines otherwise
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_logs:
        formatter = CustomJsonFormatter(JSON_FORMAT)
    else:
        formatter = logging.Formatter(PLAIN_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
