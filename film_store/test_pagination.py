import pytest

from film_store.errors import InvalidPageRequest
from film_store.pagination import Direction, Order, Page, PageRequest


@pytest.mark.parametrize(
    "page, size",
    [(0, 0), (0, -1), (-1, 10), (0, 1.5), ("0", 10), (True, 10), (0, False)],
)
def test_invalid_page_request(page, size):
    with pytest.raises(InvalidPageRequest):
        PageRequest(page, size)


def test_unknown_direction():
    with pytest.raises(InvalidPageRequest):
        Order("title", "SIDEWAYS")


def test_page_request_navigation():
    request = PageRequest.of(2, 10, Order.desc("release_date"))

    assert request.offset == 20
    assert request.sort == (Order("release_date", Direction.DESC),)
    assert request.next() == PageRequest.of(3, 10, Order.desc("release_date"))
    assert request.previous_or_first().page == 1
    assert request.first().page == 0
    assert PageRequest(0, 10).previous_or_first().page == 0


def test_page_totals():
    first = Page(range(10), PageRequest(0, 10), 25)
    last = Page(range(5), PageRequest(2, 10), 25)

    assert first.total_pages == 3
    assert first.is_first and first.has_next and not first.is_last
    assert last.number_of_elements == 5
    assert last.is_last and last.has_previous and not last.has_next


def test_empty_page():
    page = Page([], PageRequest(0, 10), 0)

    assert page.total_pages == 0
    assert page.is_first and page.is_last
    assert len(page) == 0


def test_page_past_the_end_is_last():
    page = Page([], PageRequest(7, 10), 25)

    assert page.is_last
    assert page.as_dict()["next"] is None


def test_page_as_dict():
    page = Page(["a", "b"], PageRequest(1, 2), 5)

    assert page.as_dict(str.upper) == {
        "count": 5,
        "total_pages": 3,
        "prev": 0,
        "next": 2,
        "results": ["A", "B"],
    }


def test_page_map_keeps_totals():
    page = Page([1, 2], PageRequest(0, 2), 3).map(lambda x: x * 10)

    assert list(page) == [10, 20]
    assert page.total_elements == 3
    assert page.total_pages == 2


def test_sort_is_optional():
    assert PageRequest(0, 10, None).sort == ()
    assert PageRequest(0, 10).sort == ()


def test_single_order_is_accepted_as_sort():
    assert PageRequest(0, 10, Order.asc("title")).sort == (Order.asc("title"),)


@pytest.mark.parametrize("sort", ["title", ("title",), [Order.asc("title"), "type"], 42])
def test_sort_must_hold_orders(sort):
    with pytest.raises(InvalidPageRequest):
        PageRequest(0, 10, sort)
