"""
Unit tests for the query resolver: page clamping, search precedence, and canonical params.
Run: python -m pytest tests/test_query_resolver.py
"""

from fakes import ROOT  # noqa: F401  (puts the project root on sys.path)

from src.models import QueryState, SortMode
from src.query_resolver import flatten, parse_page, resolve, to_params


def test_bad_pages_clamp_to_one():
	for raw in [None, "", "abc", "0", "-4", "  ", "-0", "page2", []]:
		assert parse_page(raw) == 1, f"page {raw!r} should clamp to 1"


def test_leading_integer_is_used():
	assert parse_page("3") == 3
	assert parse_page(" 12 ") == 12
	assert parse_page("3abc") == 3  # parseInt semantics
	assert parse_page(["7", "9"]) == 7


def test_search_term_overrides_sort():
	for sort_by in [None, "popular", "topRated", "garbage"]:
		raw = {"q": "alien"}
		if sort_by is not None:
			raw["sortBy"] = sort_by
		state = resolve(raw)
		assert state.mode is SortMode.SEARCH
		assert state.term == "alien"


def test_empty_term_is_absent():
	state = resolve({"q": "", "sortBy": "topRated"})
	assert state == QueryState(mode=SortMode.TOP_RATED, term=None, page=1)


def test_sort_defaults_to_popular():
	assert resolve({}).mode is SortMode.POPULAR
	assert resolve({"sortBy": "popular"}).mode is SortMode.POPULAR
	assert resolve({"sortBy": "TOPRATED"}).mode is SortMode.POPULAR  # exact match only


def test_search_scenario():
	state = resolve({"q": "matrix", "page": "abc"})
	assert state == QueryState(mode=SortMode.SEARCH, term="matrix", page=1)


def test_top_rated_scenario():
	state = resolve({"sortBy": "topRated", "page": "3"})
	assert state == QueryState(mode=SortMode.TOP_RATED, term=None, page=3)


def test_term_is_read_verbatim():
	assert resolve({"q": "  the thing "}).term == "  the thing "


def test_parse_qs_style_lists():
	state = resolve({"q": ["dune", "other"], "page": ["2"]})
	assert state.term == "dune"
	assert state.page == 2


def test_to_params_round_trip():
	for state in [
		QueryState(mode=SortMode.SEARCH, term="heat", page=4),
		QueryState(mode=SortMode.TOP_RATED, page=2),
		QueryState(mode=SortMode.POPULAR, page=1),
	]:
		assert resolve(to_params(state)) == state


def test_flatten_drops_absent_values():
	assert flatten({"q": None, "page": ["2"], "sortBy": "popular"}) == {"page": "2", "sortBy": "popular"}


def test_state_invariants_are_enforced():
	import pytest

	with pytest.raises(ValueError):
		QueryState(mode=SortMode.SEARCH, term=None)
	with pytest.raises(ValueError):
		QueryState(mode=SortMode.POPULAR, term="x")
	with pytest.raises(ValueError):
		QueryState(mode=SortMode.POPULAR, page=0)


def test_headings():
	assert resolve({"q": "x"}).heading == "Search Results"
	assert resolve({"sortBy": "topRated"}).heading == "Top Rated Movies"
	assert resolve({}).heading == "Popular Movies"
