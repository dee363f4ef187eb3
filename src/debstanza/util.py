import logging
import os
import sys
from typing import (
    Any,
    Optional,
    Tuple,
    TypeVar,
)

T = TypeVar("T")

_DEFAULT_LOGGER: Optional[logging.Logger] = None
_STDOUT_HANDLER: Optional[logging.StreamHandler] = None
_STDERR_HANDLER: Optional[logging.StreamHandler] = None
_LOGGING_SET_UP = False
_LIBRARY_LOGGER = logging.getLogger("debstanza")


def assume_not_none(x: Optional[T]) -> T:
    if x is None:  # pragma: no cover
        raise ValueError(
            'Internal error: None was given, but the receiver assumed "not None" here'
        )
    return x


def _logger() -> logging.Logger:
    logger = _DEFAULT_LOGGER
    if logger is not None:
        return logger
    return _LIBRARY_LOGGER


def _debug(msg: str) -> None:
    _logger().debug(msg)


def _info(msg: str) -> None:
    _logger().info(msg)


def _warn(msg: str) -> None:
    _logger().warning(msg)


def _check_color() -> Tuple[bool, bool, Optional[str]]:
    dpkg_or_default = os.environ.get(
        "DPKG_COLORS", "never" if "NO_COLOR" in os.environ else "auto"
    )
    requested_color = os.environ.get("DEB822_COLORS", dpkg_or_default)
    bad_request = None
    if requested_color not in {"auto", "always", "never"}:
        bad_request = requested_color
        requested_color = "auto"

    if requested_color == "auto":
        stdout_color = sys.stdout.isatty()
        stderr_color = sys.stderr.isatty()
    else:
        enable = requested_color == "always"
        stdout_color = enable
        stderr_color = enable
    return stdout_color, stderr_color, bad_request


def program_name() -> str:
    name = os.path.basename(sys.argv[0])
    if name.endswith(".py"):
        name = name[:-3]
    if name == "__main__":
        name = os.path.basename(os.path.dirname(sys.argv[0]))
    return name


def _stream_handler(stream: Any, use_color: bool) -> logging.StreamHandler:
    color_format = (
        "{bold}{name}{reset}: {bold}{log_color}{levelnamelower}{reset}: {message}"
    )
    colorless_format = "{name}: {levelnamelower}: {message}"
    if use_color:
        import colorlog

        handler = colorlog.StreamHandler(stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(color_format, style="{", force_color=True)
        )
        return handler
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(colorless_format, style="{"))
    return handler


def setup_logging(
    *,
    name: Optional[str] = None,
    log_only_to_stderr: bool = False,
    reconfigure_logging: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """Configure logging for a program built on top of debstanza

    The library itself never calls this; it only emits records via the
    "debstanza" logger (or the logger configured here).  Records below
    WARNING go to stdout (or stderr with `log_only_to_stderr`) and the rest
    go to stderr.

    :param name: The logger name.  Defaults to the name of the running program.
    :param log_only_to_stderr: Send every record to stderr.
    :param reconfigure_logging: Allow calling this function more than once.
    :param level: The log level of the root logger.
    :return: The logger used by debstanza from now on.
    """
    global _LOGGING_SET_UP, _DEFAULT_LOGGER, _STDOUT_HANDLER, _STDERR_HANDLER
    if _LOGGING_SET_UP and not reconfigure_logging:
        raise RuntimeError(
            "Logging has already been configured."
            " Use reconfigure_logging=True if you need to reconfigure it"
        )
    stdout_color, stderr_color, bad_request = _check_color()

    if stdout_color or stderr_color:
        try:
            import colorlog  # noqa: F401
        except ImportError:
            stdout_color = False
            stderr_color = False

    if log_only_to_stderr:
        stdout = sys.stderr
        stdout_color = stderr_color
    else:
        stdout = sys.stdout

    class LogLevelFilter(logging.Filter):
        def __init__(self, threshold: int, above: bool):
            super().__init__()
            self.threshold = threshold
            self.above = above

        def filter(self, record: logging.LogRecord) -> bool:
            if self.above:
                return record.levelno >= self.threshold
            else:
                return record.levelno < self.threshold

    root_logger = logging.getLogger()
    for existing_handler in (_STDOUT_HANDLER, _STDERR_HANDLER):
        if existing_handler is not None:
            root_logger.removeHandler(existing_handler)

    stdout_handler = _stream_handler(stdout, stdout_color)
    stderr_handler = _stream_handler(sys.stderr, stderr_color)
    stdout_handler.addFilter(LogLevelFilter(logging.WARN, False))
    stderr_handler.addFilter(LogLevelFilter(logging.WARN, True))
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)
    _STDOUT_HANDLER = stdout_handler
    _STDERR_HANDLER = stderr_handler

    if not _LOGGING_SET_UP:
        old_factory = logging.getLogRecordFactory()

        def record_factory(
            *args: Any, **kwargs: Any
        ) -> logging.LogRecord:  # pragma: no cover
            record = old_factory(*args, **kwargs)
            record.levelnamelower = record.levelname.lower()
            return record

        logging.setLogRecordFactory(record_factory)

    root_logger.setLevel(level)
    _DEFAULT_LOGGER = logging.getLogger(name if name is not None else program_name())

    if bad_request:
        _warn(
            f'Invalid color request for "{bad_request}" in either DEB822_COLORS or DPKG_COLORS.'
            ' Resetting to "auto".'
        )

    _LOGGING_SET_UP = True
    return _DEFAULT_LOGGER
