"""
Logging module for the S3 media migration tool
"""

import logging
import os
from typing import Any, Optional

LOGGER_NAME = "s3_media_migrator"

# Module-level flag to track if SQL debug logging is enabled
_DEBUG_SQL_ENABLED = False


class EnhancedFormatter(logging.Formatter):
    """
    Custom formatter that supports verbose mode (with additional context information)
    and prefixes records that belong to a specific site with that site's id
    """

    def __init__(
        self,
        fmt=None,
        datefmt=None,
        style="%",
        verbose=False,
        show_site=False,
    ):
        # Use more detailed format for verbose mode
        if verbose:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(module)s:%(lineno)d] - %(message)s"
        elif not fmt:
            fmt = "%(asctime)s - %(levelname)s - %(message)s"

        super().__init__(fmt, datefmt, style)
        self.show_site = show_site

    def format(self, record):
        result = super().format(record)

        if self.show_site:
            site = getattr(record, "site", None)
            if site is not None and site != "":
                source_id = getattr(record, "source_id", None)
                tag = f"[site {site}]"
                if source_id is not None:
                    tag = f"[site {site} / item {source_id}]"
                result = f"{tag} {result}"

        return result


class MainLogFilter(logging.Filter):
    """Only pass records that are not tagged with a site."""

    def filter(self, record):
        record_site = getattr(record, "site", None)
        return record_site is None or record_site == ""


class SiteFilter(logging.Filter):
    """Only pass records tagged with one specific site."""

    def __init__(self, site_id: int):
        super().__init__()
        self.site_id = site_id

    def filter(self, record):
        return getattr(record, "site", None) == self.site_id


def setup_main_log_file(
    output_dir: str, debug_sql: bool = False
) -> logging.FileHandler:
    """
    Set up a file handler for the main log file that contains non-site-specific logs.

    Args:
        output_dir: The output directory path
        debug_sql: If True, the run also writes SQL statements to sql_debug.log

    Returns:
        The file handler for the main log file
    """
    os.makedirs(output_dir, exist_ok=True)

    log_file = os.path.join(output_dir, "migration.log")

    file_handler = logging.FileHandler(log_file, mode="w")
    file_handler.setLevel(logging.DEBUG)  # Always use DEBUG level for file handlers
    file_handler.setFormatter(
        EnhancedFormatter("%(asctime)s - %(levelname)s - %(message)s")
    )
    file_handler.addFilter(MainLogFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(file_handler)

    logger.info(f"Main log file created at: {log_file}")
    if debug_sql:
        logger.debug("SQL debug logging requested for this run")
    return file_handler


def setup_logger(
    verbose: bool = False, debug_sql: bool = False, output_dir: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return the logger with appropriate formatting.

    Args:
        verbose: If True, set console handler to DEBUG level; otherwise INFO level
        debug_sql: If True, log every SQL statement issued through SQLAlchemy
        output_dir: Optional output directory for the main log file

    Returns:
        Configured logger instance
    """
    global _DEBUG_SQL_ENABLED
    _DEBUG_SQL_ENABLED = debug_sql

    logger = logging.getLogger(LOGGER_NAME)

    # Clear any existing handlers to prevent duplicate messages
    if logger.handlers:
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

    logger.setLevel(logging.DEBUG)  # Always set logger to DEBUG to capture all logs

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(EnhancedFormatter(verbose=verbose, show_site=True))
    logger.addHandler(console_handler)

    if output_dir:
        setup_main_log_file(output_dir, debug_sql)

    if debug_sql:
        _enable_sql_debug(logger, output_dir)

    return logger


def _enable_sql_debug(logger: logging.Logger, output_dir: Optional[str]) -> None:
    """Route SQLAlchemy's statement log to a file, or to the console without one."""
    sql_logger = logging.getLogger("sqlalchemy.engine")
    sql_logger.setLevel(logging.INFO)

    for handler in sql_logger.handlers[:]:
        sql_logger.removeHandler(handler)

    if output_dir:
        sql_log_file = os.path.join(output_dir, "sql_debug.log")
        sql_handler: logging.Handler = logging.FileHandler(sql_log_file, mode="w")
        logger.info(f"SQL debug logging enabled, writing to {sql_log_file}")
    else:
        sql_handler = logging.StreamHandler()
        logger.info("SQL debug logging enabled, writing to console")

    sql_handler.setLevel(logging.DEBUG)
    sql_handler.setFormatter(EnhancedFormatter())
    sql_logger.addHandler(sql_handler)


def setup_site_logger(
    output_dir: str, site_id: int, verbose: bool = False
) -> logging.FileHandler:
    """
    Set up a file handler for site-specific logging.

    Args:
        output_dir: The output directory path
        site_id: The WordPress site (blog) id
        verbose: If True, use the verbose record format

    Returns:
        The file handler for the site log
    """
    logs_dir = os.path.join(output_dir, "site_logs")
    os.makedirs(logs_dir, exist_ok=True)

    log_file = os.path.join(logs_dir, f"site_{site_id}_migration.log")

    file_handler = logging.FileHandler(log_file, mode="w")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(EnhancedFormatter(verbose=verbose))
    file_handler.addFilter(SiteFilter(site_id))

    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(file_handler)

    logger.info(f"Site log file created at: {log_file}", extra={"site": site_id})
    return file_handler


def close_handler(handler: logging.Handler) -> None:
    """Flush, close and detach a handler added by one of the setup functions."""
    handler.flush()
    handler.close()
    logging.getLogger(LOGGER_NAME).removeHandler(handler)


def log_with_context(level: int, message: str, **kwargs: Any) -> None:
    """
    Log a message with additional context information.

    Args:
        level: The logging level (e.g., logging.INFO)
        message: The log message
        **kwargs: Additional context to include in the log record
            (``site`` and ``source_id`` are picked up by the formatters)
    """
    exc_info = kwargs.pop("exc_info", None)

    # Filter out None values from kwargs
    extras = {k: v for k, v in kwargs.items() if v is not None}

    logger = logging.getLogger(LOGGER_NAME)
    logger.log(level, message, extra=extras, exc_info=exc_info)


def log_failed_item(site_id: int, source_id: int, error: str) -> None:
    """
    Log details of a media item that failed to migrate to the site log.

    Args:
        site_id: The site the item belongs to
        source_id: The attachment post id
        error: Description of the failure
    """
    log_with_context(
        logging.ERROR,
        f"Failed to migrate attachment {source_id}: {error}",
        site=site_id,
        source_id=source_id,
    )


def is_debug_sql_enabled() -> bool:
    """Check if SQL debug logging is enabled."""
    return _DEBUG_SQL_ENABLED


def get_logger():
    """Get the s3_media_migrator logger, creating it with defaults if needed."""
    migrator_logger = logging.getLogger(LOGGER_NAME)
    if not migrator_logger.handlers:
        migrator_logger.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(EnhancedFormatter(show_site=True))
        migrator_logger.addHandler(handler)
    return migrator_logger


# Module logger - will be properly initialized when setup_logger is called
logger = get_logger()
