"""
Lazy, restartable result sequences
"""
from typing import AsyncIterator, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


class LazySequence(Generic[T]):
    """
    Async iterable that re-runs its query on every iteration

    Each `async for` pulls a fresh snapshot from storage, so the sequence
    can be consumed more than once and never holds items in memory.
    """

    def __init__(self, factory: Callable[[], AsyncIterator[T]]):
        self._factory = factory

    def __aiter__(self) -> AsyncIterator[T]:
        return self._factory().__aiter__()

    async def to_list(self, limit: Optional[int] = None) -> List[T]:
        """Collect up to limit items"""
        items: List[T] = []
        if limit is not None and limit <= 0:
            return items
        async for item in self:
            items.append(item)
            if limit is not None and len(items) >= limit:
                break
        return items

    async def page(self, page: int = 1, page_size: int = 20) -> List[T]:
        """Collect one 1-based page"""
        start = max(page - 1, 0) * page_size
        items: List[T] = []
        index = 0
        async for item in self:
            if index >= start:
                items.append(item)
                if len(items) >= page_size:
                    break
            index += 1
        return items

    async def count(self) -> int:
        total = 0
        async for _ in self:
            total += 1
        return total

    def filter(self, predicate: Callable[[T], bool]) -> "LazySequence[T]":
        """Lazily filtered view of this sequence"""
        source = self

        async def generate():
            async for item in source:
                if predicate(item):
                    yield item

        return LazySequence(generate)
