"""Tests for PageRegistry id allocation, lookup and pruning."""
import asyncio

import pytest

from browser_kit.browser.registry import PageRegistry
from browser_kit.errors import NotConnected, PageNotFound

from fakes import FakeContext, FakePage


def _bound(pages=None):
    registry = PageRegistry()
    context = FakeContext(pages=pages)
    registry.bind(context)
    return registry, context


def test_empty_registry_creates_page_one_then_reuses_it():
    registry, context = _bound()
    first_id, first = asyncio.run(registry.get_or_create_page())
    second_id, second = asyncio.run(registry.get_or_create_page())
    assert first_id == 1
    assert second_id == 1
    assert first is second
    assert len(context.pages) == 1


def test_bind_tracks_existing_and_future_pages():
    registry, context = _bound(pages=[FakePage("https://a.test/"), FakePage("https://b.test/")])
    assert [p.id for p in registry.list_pages()] == [1, 2]
    asyncio.run(context.new_page())
    assert [p.id for p in registry.list_pages()] == [1, 2, 3]


def test_new_page_not_double_tracked_by_page_event():
    registry, _ = _bound()
    page_id, _ = asyncio.run(registry.new_page("https://example.com/"))
    assert page_id == 1
    assert len(registry) == 1
    assert registry.list_pages()[0].url == "https://example.com/"


def test_ids_strictly_increase_and_are_never_reused():
    registry, _ = _bound()
    ids = []
    for _ in range(3):
        page_id, _ = asyncio.run(registry.new_page())
        ids.append(page_id)
    asyncio.run(registry.close_page(ids[-1]))
    new_id, _ = asyncio.run(registry.new_page())
    assert ids == [1, 2, 3]
    assert new_id == 4


def test_ids_survive_reset_and_rebind():
    registry, _ = _bound()
    asyncio.run(registry.new_page())
    registry.reset()
    registry.bind(FakeContext())
    page_id, _ = asyncio.run(registry.new_page())
    assert page_id == 2


def test_default_page_is_highest_id():
    registry, _ = _bound(pages=[FakePage(), FakePage(), FakePage()])
    page_id, _ = asyncio.run(registry.get_or_create_page())
    assert page_id == 3


def test_unknown_id_raises_page_not_found():
    registry, _ = _bound()
    with pytest.raises(PageNotFound) as exc:
        asyncio.run(registry.get_or_create_page(99))
    assert exc.value.page_id == 99
    with pytest.raises(PageNotFound):
        asyncio.run(registry.close_page(99))
    with pytest.raises(PageNotFound):
        asyncio.run(registry.focus_page(99))


def test_page_close_event_untracks():
    page = FakePage()
    registry, _ = _bound(pages=[page])
    removed = []
    registry.on_untrack(lambda page_id, _page: removed.append(page_id))
    asyncio.run(page.close())
    assert len(registry) == 0
    assert removed == [1]
    with pytest.raises(PageNotFound):
        registry.state(1)


def test_focus_page_brings_to_front():
    page = FakePage()
    registry, _ = _bound(pages=[page])
    asyncio.run(registry.focus_page(1))
    page.bring_to_front.assert_awaited_once()


def test_listing_purges_broken_pages():
    good, stale = FakePage("https://ok.test/", title="OK"), FakePage()
    registry, _ = _bound(pages=[good, stale])
    stale.closed = True  # closed without emitting the event
    listed = asyncio.run(registry.list_pages_with_titles())
    assert [p.to_dict() for p in listed] == [{"id": 1, "url": "https://ok.test/", "title": "OK"}]
    assert 2 not in registry


def test_page_state_record_is_per_page():
    registry, _ = _bound(pages=[FakePage(), FakePage()])
    registry.state(1).marked_elements.append({"label": 0, "x": 1, "y": 2})
    assert registry.state(2).marked_elements == []


def test_unbound_registry_raises_not_connected():
    with pytest.raises(NotConnected):
        asyncio.run(PageRegistry().new_page())
