"""
Bounded fan-out with per-item isolation.

Each item gets its own result slot; an exception raised for one item is
captured there and never reaches its siblings.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class ItemResult(Generic[T]):
    item: Any
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_isolated(
    fn: Callable[[Any], T],
    items: Iterable[Any],
    max_workers: int = 4
) -> List[ItemResult[T]]:
    """Call ``fn`` on every item using at most ``max_workers`` threads.

    Results come back in input order regardless of completion order.
    """
    items = list(items)
    results: List[Optional[ItemResult[T]]] = [None] * len(items)
    if not items:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        futures = {executor.submit(fn, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                results[index] = ItemResult(item=items[index], value=future.result())
            except Exception as e:
                logger.error(f"Batch item {items[index]!r} failed: {e}")
                results[index] = ItemResult(item=items[index], error=e)

    return results
