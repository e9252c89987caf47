"""A wrapper that restarts a source once it reaches its end."""

from __future__ import annotations

from typing import Any, Callable


class Repeatable:
    """Recreates the wrapped source from the same arguments whenever it is exhausted."""

    def __init__(self, factory: Callable[..., Any], *args: Any) -> None:
        self.factory = factory
        self.args = args
        self._intern = factory(*args)

    def __call__(self) -> Any:
        if self._intern.eof():
            print(f"*** Reached end of trace: {self.args}")
            self._intern = self.factory(*self.args)
        return self._intern()

    def eof(self) -> bool:
        """A repeating source never ends."""
        return False