"""
Logging setup and structured log helpers for the answer API.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "assignment_api"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(
    name: str = LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure and return the application logger.

    Handlers are attached only once, so calling this repeatedly (e.g. from
    several modules or from tests) does not duplicate output.

    Args:
        name: Logger name
        level: Logging level name
        log_file: Optional path of a file to log to in addition to stdout

    Returns:
        Configured logger
    """
    log = logging.getLogger(name)
    log.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    if not log.handlers:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        log.addHandler(stream_handler)

    if log_file and not any(isinstance(h, logging.FileHandler) for h in log.handlers):
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    return log


def log_api_request(
    logger: logging.Logger,
    request_id: str,
    endpoint: str,
    method: str,
    files_count: int,
    question_preview: str
) -> None:
    """Log an incoming API request."""
    logger.info(
        f"Request {request_id}: {method} {endpoint} "
        f"files={files_count} question={question_preview!r}"
    )


def log_llm_interaction(
    logger: logging.Logger,
    request_id: str,
    prompt_length: int,
    response_length: int,
    model_used: str
) -> None:
    """Log a completed call to the text-generation service."""
    logger.info(
        f"Request {request_id}: LLM call model={model_used} "
        f"prompt_chars={prompt_length} response_chars={response_length}"
    )


# Global logger
logger = setup_logger()
