import traceback
from functools import wraps

from loguru import logger


def log_errors(func):
    """Log any exception raised by the wrapped callable, then re-raise it."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "Failed to execute {name}: {error}",
                name=func.__qualname__,
                error=str(e),
                extra={"traceback": traceback.format_exc()}
            )
            raise

    return wrapper
