"""
Standardized error handling for toolplan.

Foreign exceptions raised at the package's boundaries (file loading, batch
parsing) are wrapped into the :class:`ToolPlanError` hierarchy so callers only
need to catch one family of errors.
"""
import functools
from typing import Any, Callable, Optional, Type, TypeVar

from toolplan.types import ToolPlanError

from .logging_config import get_logger

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(
    error_type: Type[ToolPlanError] = ToolPlanError,
    reraise: bool = True,
    log_errors: bool = True,
    return_value: Optional[Any] = None,
) -> Callable[[F], F]:
    """
    Decorator for standardized error handling.

    Args:
        error_type: Exception type to wrap foreign errors in
        reraise: Whether to reraise the wrapped exception
        log_errors: Whether to log errors
        return_value: Value to return on error (if not reraising)

    Returns:
        Decorated function
    """

    def decorator(func: F) -> F:
        logger = get_logger(func.__module__)
        func_name = func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)

            except ToolPlanError:
                # Already part of the hierarchy
                raise

            except Exception as e:
                context = {"function": func_name}
                if args:
                    context["args"] = str(args)[:100]

                wrapped_error = error_type(
                    message=f"Error in {func_name}: {e!s}",
                    context=context,
                    cause=e,
                )

                if log_errors:
                    error_dict = wrapped_error.to_dict()
                    # 'message' clashes with the LogRecord attribute
                    error_dict.pop("message", None)
                    logger.error(f"Error in {func_name}: {e!s}", extra=error_dict)

                if reraise:
                    raise wrapped_error from e
                return return_value

        return wrapper  # type: ignore

    return decorator
