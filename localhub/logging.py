import logging
from typing import Any

# Library logging, silent unless the application attaches a handler
logger = logging.getLogger("localhub")
logger.addHandler(logging.NullHandler())

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the localhub logger or one of its children.

    Args:
        name: Child logger name (e.g. ``"hub"``). If None, the top level
              localhub logger is returned.

    Returns:
        logging.Logger: The requested logger instance.
    """
    if name is None:
        return logger
    return logger.getChild(name)


def set_log_level(level: int | str) -> None:
    """Set the logging level for every localhub logger.

    Args:
        level: Either a level name such as ``'DEBUG'`` or a numeric level.
    """
    logger.setLevel(level)


def add_stream_handler(
    level: int | str = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    **handler_kwargs: Any,
) -> None:
    """Attach a stream handler to the localhub logger.

    A second call is a no-op apart from a warning.

    Args:
        level: Level for the handler. Defaults to INFO.
        format_string: Format string for log records.
        **handler_kwargs: Passed through to ``logging.StreamHandler``.
    """
    if any(type(h) is logging.StreamHandler for h in logger.handlers):
        logger.warning("StreamHandler already exists for localhub logger.")
        return

    handler = logging.StreamHandler(**handler_kwargs)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)


def add_file_handler(
    filename: str,
    level: int | str = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    **handler_kwargs: Any,
) -> None:
    """Attach a file handler writing to ``filename``.

    Args:
        filename: Log file path.
        level: Level for the handler. Defaults to INFO.
        format_string: Format string for log records.
        **handler_kwargs: Passed through to ``logging.FileHandler``.
    """
    handler = logging.FileHandler(filename, **handler_kwargs)
    if any(isinstance(h, logging.FileHandler) and h.baseFilename == handler.baseFilename for h in logger.handlers):
        handler.close()
        logger.warning(f"FileHandler for {filename} already exists for localhub logger.")
        return

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)


def remove_all_handlers() -> None:
    """Remove every handler except the default NullHandler."""
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


__all__ = [
    "logger",
    "get_logger",
    "set_log_level",
    "add_stream_handler",
    "add_file_handler",
    "remove_all_handlers",
]
