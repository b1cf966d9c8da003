"""Tests for the search bar controller."""
import asyncio

from fakes import FakeLookup, FakeProvider
from quotevault.debounce import DebounceScheduler
from quotevault.recent import RecentSearchStore
from quotevault.search import FallbackSearchOrchestrator, SessionStatus
from quotevault.searchbar import SearchBar
from quotevault.storage import MemoryStorage
from quotevault.suggestions import SuggestionAggregator


def make_bar(lookup=None, primary=None):
    store = RecentSearchStore(MemoryStorage())
    aggregator = SuggestionAggregator(lookup or FakeLookup(), store)
    scheduler = DebounceScheduler(aggregator, delay=0.01)
    orchestrator = FallbackSearchOrchestrator(
        primary or FakeProvider("primary", total=3),
        FakeProvider("fallback", total=3)
    )
    return SearchBar(scheduler, orchestrator, store)


def test_submit_records_recent_and_searches():
    """Submitting stores the query and runs the book search."""
    bar = make_bar()

    async def scenario():
        bar.set_query("life")
        return await bar.submit()

    session = asyncio.run(scenario())

    assert bar.recent_store.list() == ["life"]
    assert session.status == SessionStatus.SUCCESS
    assert session.query == "life"
    assert bar.is_open is False


def test_submit_blank_does_nothing():
    """Blank input neither searches nor records history."""
    primary = FakeProvider("primary", total=3)
    bar = make_bar(primary=primary)

    async def scenario():
        bar.set_query("  ")
        return await bar.submit()

    assert asyncio.run(scenario()) is None
    assert primary.calls == []
    assert bar.recent_store.list() == []


def test_keyboard_navigation_to_author():
    """Arrow down then Enter on an author navigates and closes the list."""
    lookup = FakeLookup(authors=[{"id": "a1", "name": "Tolkien"}])
    bar = make_bar(lookup=lookup)

    async def scenario():
        bar.set_query("tolk")
        await bar.scheduler.wait()

    asyncio.run(scenario())

    assert bar.handle_key("ArrowDown") is None
    action = bar.handle_key("Enter")
    assert action.route == "/author/a1"
    assert bar.is_open is False


def test_enter_on_recent_refills_query():
    """Choosing a recent search puts it back into the input."""
    bar = make_bar()
    bar.recent_store.add("tolkien letters")

    async def scenario():
        bar.set_query("tolk")
        await bar.scheduler.wait()
        bar.handle_key("ArrowDown")
        action = bar.handle_key("Enter")
        bar.close()
        return action

    action = asyncio.run(scenario())

    assert action.replace_query == "tolkien letters"
    assert bar.query == "tolkien letters"


def test_escape_clears_suggestions():
    """Escape closes the list and drops its entries."""
    lookup = FakeLookup(books=[{"id": 1, "title": "Dune"}])
    bar = make_bar(lookup=lookup)

    async def scenario():
        bar.set_query("dune")
        await bar.scheduler.wait()

    asyncio.run(scenario())
    bar.handle_key("Escape")

    assert bar.is_open is False
    assert bar.aggregator.suggestions == []
    assert bar.aggregator.selected_index == -1


def test_submit_during_fetch_clears_loading():
    """Submitting while suggestions load leaves the pipeline idle."""
    lookup = FakeLookup(books=[{"id": 1, "title": "Dune"}])
    bar = make_bar(lookup=lookup)

    async def scenario():
        lookup.gates["dune"] = asyncio.Event()
        bar.set_query("dune")
        while not lookup.calls:
            await asyncio.sleep(0.005)
        await bar.submit()
        lookup.gates["dune"].set()
        await bar.scheduler.wait()

    asyncio.run(scenario())

    assert bar.aggregator.loading is False
    assert bar.aggregator.suggestions == []


def test_escape_stops_pending_fetch():
    """A fetch scheduled before Escape never refills the closed list."""
    lookup = FakeLookup(books=[{"id": 1, "title": "Dune"}])
    bar = make_bar(lookup=lookup)

    async def scenario():
        bar.set_query("dune")
        await bar.scheduler.wait()
        bar.set_query("dun")
        bar.handle_key("Escape")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert bar.is_open is False
    assert bar.aggregator.suggestions == []
    assert bar.scheduler.pending is False
    assert ("books", "dun") not in lookup.calls


def test_submit_drops_previous_suggestions():
    """Suggestions for the typed text do not survive a submit."""
    lookup = FakeLookup(books=[{"id": 1, "title": "Dune"}])
    bar = make_bar(lookup=lookup)

    async def scenario():
        bar.set_query("dune")
        await bar.scheduler.wait()
        assert [s.text for s in bar.aggregator.suggestions] == ["Dune"]
        bar.handle_key("ArrowDown")
        await bar.submit()

    asyncio.run(scenario())

    assert bar.aggregator.suggestions == []
    assert bar.aggregator.selected_index == -1
