# src/formpiper_shell/core/utils/configure_logging.py
import logging
import sys

from tqdm import tqdm


class LogWithTqdm(logging.Handler):
    """
    Logging handler that writes through `tqdm.write()` so log lines do not
    tear the progress bar of a running `page load`.
    """

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def _level(value, fallback):
    if isinstance(value, str):
        return getattr(logging, value.upper(), fallback)
    return value if value is not None else fallback


def configure_logger(general_level='INFO', module_specific_levels=None, silenced_loggers=None):
    """
    Configures the root logger with a tqdm-aware handler.

    `module_specific_levels` and `silenced_loggers` map logger names to levels;
    the latter default to CRITICAL when the level string is not recognised.
    """
    handler = LogWithTqdm()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(general_level, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name, level in (module_specific_levels or {}).items():
        logging.getLogger(name).setLevel(_level(level, logging.INFO))

    for name, level in (silenced_loggers or {}).items():
        logging.getLogger(name).setLevel(_level(level, logging.CRITICAL))
