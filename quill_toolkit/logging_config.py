from __future__ import annotations

"""Central logging configuration for quill-toolkit.

Import and call :func:`setup_logging` once from the embedding application.
Library modules only ever create loggers; they never configure handlers.
"""

import logging
import logging.config
import os

from quill_toolkit.config import ConfigManager

__all__ = ["setup_logging"]

_TRUTHY = {'1', 'true', 'yes', 'on'}
_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_IMAGE_LOGGERS = (
    'quill_toolkit.core.converter.image_resolver',
    'quill_toolkit.core.parser.docx_utils',
)


def setup_logging() -> None:
    """Configure logging using the ``logging`` section of the YAML configuration."""
    log_dir = os.environ.get("QUILL_LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "quill.log")

    try:
        logging_config = ConfigManager().get_logging_config()

        if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
            if "handlers" in logging_config and "file" in logging_config["handlers"]:
                logging_config["handlers"]["file"]["filename"] = log_file

            logging.config.dictConfig(logging_config)
            logging.getLogger(__name__).info("===== Logging initialised from config files =====")
        else:
            _setup_minimal_logging(log_file)
    except Exception as exc:
        print(f"Error loading logging config: {exc}")
        _setup_minimal_logging(log_file)

    _apply_level_override()
    _apply_debug_overrides()


def _setup_minimal_logging(log_file: str) -> None:
    """Set up console and plain file logging when the config is unavailable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': _FORMAT,
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO',
            },
            'file': {
                'class': 'logging.FileHandler',
                'formatter': 'simple',
                'filename': log_file,
                'encoding': 'utf-8',
                'level': 'DEBUG',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console', 'file'],
        },
    }

    logging.config.dictConfig(minimal_config)
    logging.getLogger(__name__).error("===== Logging initialised with minimal fallback (config error) =====")


def _apply_level_override() -> None:
    """Honour ``QUILL_LOG_LEVEL`` for the package logger."""
    level_name = os.environ.get('QUILL_LOG_LEVEL', '').strip().upper()
    if not level_name:
        return
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        logging.getLogger(__name__).warning("Ignoring unknown QUILL_LOG_LEVEL '%s'", level_name)
        return
    logging.getLogger('quill_toolkit').setLevel(level)


def _debug_targets() -> list[str]:
    """Logger names switched to DEBUG by the environment.

    ``QUILL_DEBUG_IMAGES`` covers image resolution and remote fetches;
    ``QUILL_DEBUG_MODULES`` takes a comma separated list of logger names.
    """
    targets = []
    if os.environ.get('QUILL_DEBUG_IMAGES', '').strip().lower() in _TRUTHY:
        targets.extend(_IMAGE_LOGGERS)
    for name in os.environ.get('QUILL_DEBUG_MODULES', '').split(','):
        if name.strip():
            targets.append(name.strip())
    return targets


def _apply_debug_overrides() -> None:
    try:
        for name in _debug_targets():
            logger = logging.getLogger(name)
            logger.setLevel(logging.DEBUG)
            if not any(h.level <= logging.DEBUG for h in logger.handlers):
                handler = logging.StreamHandler()
                handler.setLevel(logging.DEBUG)
                handler.setFormatter(logging.Formatter(_FORMAT))
                logger.addHandler(handler)
            logger.info("Debug override active for logger '%s'", name)
    except Exception as exc:
        # Never break the embedding application because of logging
        print(f"Warning: failed to apply debug overrides: {exc}")
