import logging
import sys
import os
from contextvars import ContextVar
from typing import Dict, Optional

# Set by RequestTrackingMiddleware for the lifetime of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

DEFAULT_FORMAT = (
    '%(asctime)s │ %(name)-28s │ %(levelname)-8s │ '
    '%(request_id)-8.8s │ [%(filename)s:%(lineno)d] │ %(message)s'
)

# Third-party loggers that drown out booking logs at INFO
QUIET_LOGGERS = {
    "sqlalchemy.engine": "SQL_LOG_LEVEL",
    "uvicorn.access": "ACCESS_LOG_LEVEL",
    "httpx": "HTTPX_LOG_LEVEL",
}

LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[1;91m',
    'CRITICAL': '\033[1;95m',
}
RESET = '\033[0m'
NAME_COLOR = '\033[94m'


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').lower() in ('1', 'true', 'yes')


class RequestIdFilter(logging.Filter):
    """Stamps every record with the id of the request being served"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


class ColoredFormatter(logging.Formatter):
    """Colours level and logger names when writing to a terminal"""

    def __init__(self, format_string: str, use_colors: bool = True):
        super().__init__(format_string)
        self.use_colors = self._should_use_colors(use_colors)
        self._by_level: Dict[str, logging.Formatter] = {}
        if self.use_colors:
            for level, color in LEVEL_COLORS.items():
                colored = format_string.replace('%(levelname)', f'{color}%(levelname)', 1)
                colored = colored.replace('%(levelname)-8s', f'%(levelname)-8s{RESET}', 1)
                colored = colored.replace('%(name)-28s', f'{NAME_COLOR}%(name)-28s{RESET}', 1)
                self._by_level[level] = logging.Formatter(colored)

    @staticmethod
    def _should_use_colors(use_colors: bool) -> bool:
        if not use_colors or _env_flag('NO_COLOR'):
            return False
        if _env_flag('FORCE_COLOR'):
            return True
        if os.environ.get('TERM') == 'dumb':
            return False
        return sys.stdout.isatty()

    def format(self, record):
        formatter = self._by_level.get(record.levelname)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def setup_logging(
    log_level: Optional[str] = None,
    format_string: Optional[str] = None,
    force_configure: bool = False,
    use_colors: bool = True
) -> None:
    """
    Configure the root logger once for the booking service.

    LOG_LEVEL sets the application level; SQL_LOG_LEVEL, ACCESS_LOG_LEVEL and
    HTTPX_LOG_LEVEL tune the chatty library loggers (WARNING by default).
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    if root_logger.handlers and not force_configure:
        return

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    numeric_level = getattr(logging, log_level, logging.INFO)
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(RequestIdFilter())
    console_handler.setFormatter(ColoredFormatter(format_string or DEFAULT_FORMAT, use_colors=use_colors))
    root_logger.addHandler(console_handler)

    for name, env_name in QUIET_LOGGERS.items():
        level = os.getenv(env_name, "WARNING").upper()
        logging.getLogger(name).setLevel(getattr(logging, level, logging.WARNING))

    root_logger.debug("Logging configured with level %s", log_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.
    """
    logger = logging.getLogger(name)
    # Ensure it inherits from root logger and doesn't have its own handlers
    logger.handlers = []
    logger.propagate = True
    return logger
