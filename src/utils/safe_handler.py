import functools
import inspect

from fastapi import HTTPException

from src.utils.logger import api_logger


DEFAULT_ERROR_DETAIL = "Something went wrong. Please try again."


def _log_http_exception(func_name: str, he: HTTPException) -> None:
    status = getattr(he, "status_code", None)
    detail = getattr(he, "detail", None)
    if status and status >= 500:
        api_logger.error("%s -> HTTP %s: %s", func_name, status, detail)
    else:
        api_logger.warning("%s -> HTTP %s: %s", func_name, status, detail)


# -------------------------
# safe_handler decorator (sync & async aware)
# -------------------------
def safe_handler(default_status: int = 500, default_detail: str = DEFAULT_ERROR_DETAIL):
    """
    Decorator for route functions:
    - HTTPException is logged (WARNING for 4xx, ERROR for 5xx) and re-raised
    - any other exception is logged with its stack and converted to
      HTTPException(default_status, default_detail) so internals never leak
    """

    def decorator(func):
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except HTTPException as he:
                    _log_http_exception(func.__name__, he)
                    raise
                except Exception as e:
                    api_logger.exception("Unhandled exception in %s: %s", func.__name__, e)
                    raise HTTPException(status_code=default_status, detail=default_detail)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except HTTPException as he:
                _log_http_exception(func.__name__, he)
                raise
            except Exception as e:
                api_logger.exception("Unhandled exception in %s: %s", func.__name__, e)
                raise HTTPException(status_code=default_status, detail=default_detail)

        return sync_wrapper

    return decorator
