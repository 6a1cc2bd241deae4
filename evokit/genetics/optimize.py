from __future__ import annotations

from enum import Enum
import functools
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


class Optimize(str, Enum):
    """Optimization direction: which end of the fitness ordering is preferred."""

    MINIMUM = "minimum"
    MAXIMUM = "maximum"

    def compare(self, a: Any, b: Any) -> int:
        """Compare two fitness values; positive means `a` is better than `b`."""
        if a == b:
            return 0
        if self is Optimize.MAXIMUM:
            return 1 if a > b else -1
        return 1 if a < b else -1

    def is_better(self, a: Any, b: Any) -> bool:
        return self.compare(a, b) > 0

    def best(self, a: T, b: T, key: Callable[[T], Any] = lambda x: x) -> T:
        """Return the better of `a` and `b`; `a` wins ties."""
        return b if self.compare(key(b), key(a)) > 0 else a

    def worst(self, a: T, b: T, key: Callable[[T], Any] = lambda x: x) -> T:
        """Return the worse of `a` and `b`; `a` wins ties."""
        return b if self.compare(key(b), key(a)) < 0 else a

    def ascending(self, key: Callable[[T], Any] = lambda x: x) -> Callable[[T], Any]:
        """Sort key ordering elements from worst to best."""
        return functools.cmp_to_key(lambda a, b: self.compare(key(a), key(b)))

    def descending(self, key: Callable[[T], Any] = lambda x: x) -> Callable[[T], Any]:
        """Sort key ordering elements from best to worst."""
        return functools.cmp_to_key(lambda a, b: self.compare(key(b), key(a)))

    def sorted_best_first(
        self, items: Iterable[T], key: Callable[[T], Any] = lambda x: x
    ) -> list[T]:
        # sorted() is stable, so equal elements keep their original order
        return sorted(items, key=self.descending(key))
