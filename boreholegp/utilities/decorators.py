import contextlib
import logging
from functools import wraps
from io import StringIO


def log_print(logger: logging.Logger, level: int = logging.DEBUG):
    """Capture anything printed to stdout by the decorated function and send it to
    `logger` instead.

    Some libraries (e.g. the mogp-emulator) print progress messages while fitting;
    these are emitted line by line at `level` rather than cluttering the console.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            buffer = StringIO()
            try:
                with contextlib.redirect_stdout(buffer):
                    return func(*args, **kwargs)
            finally:
                for line in buffer.getvalue().splitlines():
                    if line.strip():
                        logger.log(level, line)

        return wrapper

    return decorator
