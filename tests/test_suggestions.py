"""Tests for suggestion aggregation and selection."""
import asyncio

import pytest

from fakes import FakeLookup
from quotevault.models import Suggestion, SuggestionType
from quotevault.recent import RecentSearchStore
from quotevault.storage import MemoryStorage
from quotevault.suggestions import SuggestionAggregator


def make_aggregator(lookup, recent=()):
    store = RecentSearchStore(MemoryStorage())
    for query in reversed(recent):
        store.add(query)
    return SuggestionAggregator(lookup, store)


def loaded_lookup():
    return FakeLookup(
        quotes=[{"id": i, "content": f"the sea quote {i}"} for i in range(5)],
        authors=[{"id": i, "name": f"Sea Author {i}"} for i in range(5)],
        books=[{"id": i, "title": f"Sea Book {i}"} for i in range(5)],
    )


def test_merged_order_and_caps():
    """Recent, quote, author, book; capped at 2, 3, 3, 3."""
    aggregator = make_aggregator(loaded_lookup(), recent=["sea one", "sea two", "sea three"])

    asyncio.run(aggregator.fetch_suggestions("sea"))

    types = [s.type for s in aggregator.suggestions]
    assert len(aggregator.suggestions) == 11
    assert types == (
        [SuggestionType.RECENT] * 2
        + [SuggestionType.QUOTE] * 3
        + [SuggestionType.AUTHOR] * 3
        + [SuggestionType.BOOK] * 3
    )
    assert [s.text for s in aggregator.suggestions[:2]] == ["sea one", "sea two"]
    assert aggregator.selected_index == -1
    assert aggregator.loading is False
    assert aggregator.error is None


def test_failed_lookup_clears_everything():
    """One failing table means no suggestions at all."""
    lookup = FakeLookup(
        quotes=[{"id": 1, "content": "tolkien said"}],
        books=[{"id": 2, "title": "Tolkien: A Biography"}],
        fail_on="authors",
    )
    aggregator = make_aggregator(lookup)
    aggregator.suggestions = [Suggestion(SuggestionType.RECENT, "old")]

    asyncio.run(aggregator.fetch_suggestions("tolkien"))

    assert aggregator.suggestions == []
    assert aggregator.error == "authors lookup failed"
    assert aggregator.loading is False


def test_blank_query_issues_no_lookup():
    """Whitespace clears state without touching the tables."""
    lookup = loaded_lookup()
    aggregator = make_aggregator(lookup)
    aggregator.error = "previous failure"
    aggregator.suggestions = [Suggestion(SuggestionType.RECENT, "old")]

    asyncio.run(aggregator.fetch_suggestions("   "))

    assert lookup.calls == []
    assert aggregator.suggestions == []
    assert aggregator.error is None
    assert aggregator.loading is False


def test_long_quotes_are_shortened():
    """Quote text over 60 characters is cut to 57 plus an ellipsis."""
    content = "It is a truth universally acknowledged, that a single man in possession"
    aggregator = make_aggregator(FakeLookup(quotes=[{"id": 7, "content": content}]))

    asyncio.run(aggregator.fetch_suggestions("truth"))

    text = aggregator.suggestions[0].text
    assert len(text) == 60
    assert text == content[:57] + "..."


def test_stale_result_is_discarded():
    """A slower fetch for an older query never overwrites a newer one."""
    lookup = FakeLookup(books=[{"id": 1, "title": "abc"}, {"id": 2, "title": "abd"}])
    aggregator = make_aggregator(lookup)

    async def scenario():
        lookup.gates["ab"] = asyncio.Event()
        ab_token = aggregator.next_token()
        ab_fetch = asyncio.ensure_future(aggregator.fetch_suggestions("ab", ab_token))
        await asyncio.sleep(0)
        await aggregator.fetch_suggestions("abc", aggregator.next_token())
        lookup.gates["ab"].set()
        await ab_fetch

    asyncio.run(scenario())

    assert [s.text for s in aggregator.suggestions] == ["abc"]


def test_selection_is_clamped():
    """Arrow navigation stops at both ends instead of wrapping."""
    aggregator = make_aggregator(FakeLookup(authors=[{"id": 1, "name": "Ann"}, {"id": 2, "name": "Anna"}]))
    asyncio.run(aggregator.fetch_suggestions("ann"))

    assert aggregator.select_previous() == -1
    assert aggregator.select_next() == 0
    assert aggregator.select_next() == 1
    assert aggregator.select_next() == 1
    assert aggregator.select_previous() == 0
    assert aggregator.select_previous() == 0


@pytest.mark.parametrize("suggestion,route", [
    (Suggestion(SuggestionType.QUOTE, "q", "11"), "/quote/11"),
    (Suggestion(SuggestionType.AUTHOR, "a", "22"), "/author/22"),
    (Suggestion(SuggestionType.BOOK, "b", "33"), "/search?book=33"),
])
def test_activate_entity_navigates(suggestion, route):
    """Entity suggestions resolve to their detail route."""
    aggregator = make_aggregator(FakeLookup())
    aggregator.suggestions = [suggestion]
    aggregator.select_next()

    action = aggregator.activate()

    assert action.route == route
    assert action.replace_query is None


def test_activate_recent_replaces_query():
    """Recent searches are put back into the input instead of navigating."""
    aggregator = make_aggregator(FakeLookup())
    aggregator.suggestions = [Suggestion(SuggestionType.RECENT, "orwell")]

    assert aggregator.activate() is None
    aggregator.select_next()
    action = aggregator.activate()

    assert action.replace_query == "orwell"
    assert action.route is None


def test_entity_suggestion_requires_id():
    """Only recent and trending suggestions may omit an id."""
    with pytest.raises(ValueError):
        Suggestion(SuggestionType.BOOK, "Dune")
    assert Suggestion(SuggestionType.TRENDING, "dune").id is None


def test_failed_fetch_resets_selection():
    """A failed refresh leaves no selection pointing into the empty list."""
    lookup = loaded_lookup()
    aggregator = make_aggregator(lookup)

    asyncio.run(aggregator.fetch_suggestions("sea"))
    aggregator.select_next()
    aggregator.select_next()
    assert aggregator.selected_index == 1

    lookup.fail_on = "books"
    asyncio.run(aggregator.fetch_suggestions("sea"))

    assert aggregator.suggestions == []
    assert aggregator.selected_index == -1
    assert aggregator.selected is None
