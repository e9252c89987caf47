"""Helpers that select bounded windows of a queue."""

from __future__ import annotations

from itertools import islice
from typing import Any, Callable, MutableSequence, Optional, Sequence, Tuple


def get_span(items: Sequence[Any], size: int, start: int = 0) -> Tuple[int, int]:
    """Return ``(begin, end)`` indices of at most ``size`` items from ``start``."""
    if size < 0:
        raise ValueError(f"span size must be non-negative, got {size}")
    if not 0 <= start <= len(items):
        raise ValueError(f"span start {start} is outside the sequence")
    return start, start + min(len(items) - start, size)


def get_span_p(
    items: Sequence[Any],
    size: Optional[int],
    predicate: Callable[[Any], bool],
    start: int = 0,
) -> Tuple[int, int]:
    """Return the leading run of items satisfying ``predicate``, capped by ``size``.

    A ``size`` of ``None`` leaves the span unbounded.
    """
    limit = len(items) if size is None else size
    begin, end = get_span(items, limit, start)
    stop = next(
        (index for index, item in enumerate(islice(items, begin, end), begin) if not predicate(item)),
        end,
    )
    return begin, stop


def _erase(queue: MutableSequence[Any], begin: int, end: int) -> None:
    try:
        del queue[begin:end]
    except TypeError:
        for _ in range(end - begin):
            del queue[begin]


def extract_if(items: MutableSequence[Any], predicate: Callable[[Any], bool]) -> list:
    """Remove the items matching ``predicate`` in place and return them in order."""
    kept: list = []
    taken: list = []
    for item in items:
        (taken if predicate(item) else kept).append(item)
    items.clear()
    items.extend(kept)
    return taken


def transform_while_n(
    queue: MutableSequence[Any],
    size: Optional[int],
    test_func: Callable[[Any], bool],
    transform_func: Callable[[Any], Any],
) -> list:
    """Pop the leading items passing ``test_func`` (at most ``size``), returning them transformed."""
    begin, end = get_span_p(queue, size, test_func)
    result = [transform_func(item) for item in islice(queue, begin, end)]
    _erase(queue, begin, end)
    return result