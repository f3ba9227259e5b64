"""
Unit tests for the request dispatcher: one catalog call per request, non-blocking, failures captured.
"""

from concurrent.futures import ThreadPoolExecutor

from fakes import FakeCatalog, failing_catalog, make_page

from src.deferred import DeferredState
from src.dispatcher import RequestDispatcher
from src.models import MoviePage, QueryState, SortMode
from src.query_resolver import resolve


def dispatch_and_settle(catalog, raw_params):
	dispatcher = RequestDispatcher(catalog, max_workers=1)
	try:
		deferred = dispatcher.dispatch(resolve(raw_params))
		deferred.settle(timeout=5)
		return deferred
	finally:
		dispatcher.shutdown(wait=True)


def test_search_scenario_calls_search():
	catalog = FakeCatalog()
	deferred = dispatch_and_settle(catalog, {"q": "matrix", "page": "abc"})
	assert catalog.calls == [("search", "matrix", 1)]
	assert deferred.state is DeferredState.RESOLVED


def test_top_rated_scenario_calls_top_rated():
	catalog = FakeCatalog()
	dispatch_and_settle(catalog, {"sortBy": "topRated", "page": "3"})
	assert catalog.calls == [("list_top_rated", 3)]


def test_default_calls_popular():
	catalog = FakeCatalog()
	dispatch_and_settle(catalog, {"page": "2"})
	assert catalog.calls == [("list_popular", 2)]


def test_dispatch_does_not_wait_for_the_catalog():
	catalog = FakeCatalog(hold=True)
	dispatcher = RequestDispatcher(catalog, max_workers=1)
	try:
		deferred = dispatcher.dispatch(QueryState(mode=SortMode.POPULAR, page=1))
		assert deferred.state is DeferredState.PENDING
		catalog.release.set()
		assert deferred.settle(timeout=5) is DeferredState.RESOLVED
		assert deferred.value == catalog.page
	finally:
		dispatcher.shutdown(wait=True)


def test_catalog_failure_ends_failed_never_resolved():
	deferred = dispatch_and_settle(failing_catalog(), {"q": "matrix"})
	assert deferred.state is DeferredState.FAILED
	assert deferred.value is None
	assert "503" in str(deferred.error)


def test_empty_result_set_is_not_an_error():
	catalog = FakeCatalog(page=make_page(n=0, total_pages=1))
	deferred = dispatch_and_settle(catalog, {"q": "zzzzzz"})
	assert deferred.state is DeferredState.RESOLVED
	assert deferred.value.results == ()


def test_shared_executor_is_not_shut_down():
	executor = ThreadPoolExecutor(max_workers=1)
	dispatcher = RequestDispatcher(FakeCatalog(), executor=executor)
	dispatcher.shutdown()
	assert executor.submit(lambda: 42).result(timeout=5) == 42
	executor.shutdown()


def test_dispatch_after_shutdown_fails_the_deferred():
	dispatcher = RequestDispatcher(FakeCatalog(), max_workers=1)
	dispatcher.shutdown(wait=True)
	deferred = dispatcher.dispatch(QueryState(mode=SortMode.POPULAR))
	assert deferred.state is DeferredState.FAILED


class ZeroPageCatalog(FakeCatalog):
	def list_popular(self, page):
		self.calls.append(("list_popular", page))
		return MoviePage(results=(), total_pages=0)


def test_page_breaking_invariants_fails_in_the_worker():
	deferred = dispatch_and_settle(ZeroPageCatalog(), {})
	assert deferred.state is DeferredState.FAILED
	assert isinstance(deferred.error, ValueError)


def test_movie_page_invariants():
	import pytest

	with pytest.raises(ValueError):
		MoviePage(total_pages=0)
	with pytest.raises(ValueError):
		MoviePage(current_page=0)
	assert MoviePage().total_pages == 1
