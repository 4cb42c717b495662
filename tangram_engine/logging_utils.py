"""Verbose DEBUG call tracing for geometry-heavy modules."""

from __future__ import annotations

import inspect
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Iterable, MutableMapping, Optional, Sequence, Set, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_repr = reprlib.Repr()
_repr.maxother = 120
_repr.maxlist = 8
_repr.maxtuple = 8
_repr.maxdict = 8


def _is_point(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in value)
    )


def _summarize_array(value: np.ndarray, max_items: int) -> str:
    head = f"ndarray(shape={tuple(value.shape)})"
    if value.size == 0:
        return head
    if value.size <= max_items * 2:
        return f"{head}={np.array2string(value, precision=4, separator=',')}"
    return f"{head}, min={float(value.min()):.4g}, max={float(value.max()):.4g}"


def summarize(value: Any, *, max_items: int = 6, max_length: int = 300) -> str:
    """Render ``value`` compactly for log lines.

    Points print as ``(x, y)`` with four decimals, arrays as shape plus values
    or range, and objects that define ``log_summary()`` use it.
    """

    if isinstance(value, np.ndarray):
        return _summarize_array(value, max_items)
    summary = getattr(value, "log_summary", None)
    if callable(summary):
        return str(summary())
    if _is_point(value):
        return f"({value[0]:.4f}, {value[1]:.4f})"
    if isinstance(value, (list, tuple)):
        parts = []
        for idx, item in enumerate(value):
            if idx >= max_items:
                parts.append(f"...+{len(value) - max_items}")
                break
            parts.append(summarize(item, max_items=max_items))
        joined = ", ".join(parts)
        return f"({joined})" if isinstance(value, tuple) else f"[{joined}]"
    if isinstance(value, dict):
        parts = []
        for idx, (key, item) in enumerate(value.items()):
            if idx >= max_items:
                parts.append("...")
                break
            parts.append(f"{key!s}: {summarize(item, max_items=max_items)}")
        return "{" + ", ".join(parts) + "}"
    rendered = _repr.repr(value)
    if len(rendered) > max_length:
        return rendered[:max_length] + "..."
    return rendered


def _format_call(args: Sequence[Any], kwargs: MutableMapping[str, Any]) -> str:
    parts = [summarize(arg) for arg in args]
    parts.extend(f"{key}={summarize(value)}" for key, value in kwargs.items())
    return ", ".join(parts)


def debug_log_call(
    logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True
) -> Callable[[F], F]:
    """Return a decorator that logs entry, exit and result at DEBUG level."""

    def decorator(func: F) -> F:
        if getattr(func, "_debug_logging_wrapped", False):
            return func

        qualname = name or getattr(func, "__qualname__", func.__name__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)
            logger.debug("-> %s(%s)", qualname, _format_call(args, kwargs))
            result = func(*args, **kwargs)
            if log_result:
                logger.debug("<- %s = %s", qualname, summarize(result))
            else:
                logger.debug("<- %s", qualname)
            return result

        setattr(wrapper, "_debug_logging_wrapped", True)
        return cast(F, wrapper)

    return decorator


def apply_debug_logging(
    namespace: MutableMapping[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
    skip: Optional[Iterable[str]] = None,
) -> None:
    """Wrap the public module-level functions in ``namespace`` with call tracing.

    Private helpers (leading underscore) are left alone so hot inner loops do
    not pay for the wrapper.
    """

    module_name = namespace.get("__name__")
    logger = logger or logging.getLogger(module_name if isinstance(module_name, str) else __name__)
    skip_set: Set[str] = set(skip or [])

    for attr, value in list(namespace.items()):
        if attr.startswith("_") or attr in skip_set:
            continue
        if inspect.isfunction(value) and value.__module__ == module_name:
            namespace[attr] = debug_log_call(logger, name=attr)(value)


__all__ = ["summarize", "debug_log_call", "apply_debug_logging"]
