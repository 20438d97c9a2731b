import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from film_store.errors import InvalidPageRequest

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_PAGE_SIZE = 20


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class Order:
    field: str
    direction: Direction = Direction.ASC

    def __post_init__(self):
        try:
            object.__setattr__(self, "direction", Direction(self.direction))
        except ValueError:
            raise InvalidPageRequest(f"Unknown sort direction {self.direction!r}") from None

    @classmethod
    def asc(cls, field_name: str) -> "Order":
        return cls(field_name, Direction.ASC)

    @classmethod
    def desc(cls, field_name: str) -> "Order":
        return cls(field_name, Direction.DESC)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_sort(sort) -> Tuple[Order, ...]:
    if sort is None:
        return ()
    if isinstance(sort, Order):
        return (sort,)
    if isinstance(sort, (str, bytes)):
        raise InvalidPageRequest(f"Sort must be a sequence of Order, got {sort!r}")
    try:
        orders = tuple(sort)
    except TypeError:
        raise InvalidPageRequest(f"Sort must be a sequence of Order, got {sort!r}") from None
    for order in orders:
        if not isinstance(order, Order):
            raise InvalidPageRequest(f"Sort entries must be Order, got {order!r}")
    return orders


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page index, page size and optional sort orders"""

    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: Tuple[Order, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not _is_int(self.page) or self.page < 0:
            raise InvalidPageRequest(f"Page index must be a non-negative integer, got {self.page!r}")
        if not _is_int(self.size) or self.size <= 0:
            raise InvalidPageRequest(f"Page size must be a positive integer, got {self.size!r}")
        object.__setattr__(self, "sort", _parse_sort(self.sort))

    @classmethod
    def of(cls, page: int, size: int, *orders: Order) -> "PageRequest":
        return cls(page=page, size=size, sort=orders)

    @property
    def offset(self) -> int:
        return self.page * self.size

    def next(self) -> "PageRequest":
        return PageRequest(self.page + 1, self.size, self.sort)

    def previous_or_first(self) -> "PageRequest":
        return PageRequest(max(self.page - 1, 0), self.size, self.sort)

    def first(self) -> "PageRequest":
        return PageRequest(0, self.size, self.sort)


@dataclass(frozen=True)
class Page(Generic[T]):
    """A slice of a larger result set plus the totals needed to walk it"""

    content: Tuple[T, ...]
    request: PageRequest
    total_elements: int

    def __post_init__(self):
        object.__setattr__(self, "content", tuple(self.content))

    def __iter__(self):
        return iter(self.content)

    def __len__(self):
        return len(self.content)

    @property
    def number(self) -> int:
        return self.request.page

    @property
    def size(self) -> int:
        return self.request.size

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.number + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @property
    def is_last(self) -> bool:
        return not self.has_next

    def map(self, converter: Callable[[T], R]) -> "Page[R]":
        return Page(tuple(converter(item) for item in self.content), self.request, self.total_elements)

    def as_dict(self, converter: Optional[Callable[[T], Dict]] = None) -> Dict:
        """List response with counters and neighbour page numbers"""
        results: Sequence = self.content if converter is None else [converter(item) for item in self.content]
        return {
            "count": self.total_elements,
            "total_pages": self.total_pages,
            "prev": self.number - 1 if self.has_previous else None,
            "next": self.number + 1 if self.has_next else None,
            "results": list(results),
        }
