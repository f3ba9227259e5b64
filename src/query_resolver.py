"""
Query resolution module.
Turns raw, user-editable URL parameters into a canonical QueryState and back.
Pure functions only: malformed input is clamped, never raised.
"""

import re  # strict integer matching for the page parameter
from typing import Any, Dict, Mapping, Optional  # type annotations

from loguru import logger  # console logging

from .models import QueryState, SortMode, SORT_POPULAR, SORT_TOP_RATED  # canonical request types

# Leading integer, mirroring parseInt semantics ("3abc" -> 3, "abc" -> fail)
RE_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _first(value: Any) -> Optional[str]:
	"""Return a single string for a parameter value; parse_qs-style lists use their first item."""
	if value is None:
		return None
	if isinstance(value, (list, tuple)):
		return str(value[0]) if value else None
	return str(value)


def parse_page(raw: Any) -> int:
	"""Parse a raw page value; anything unparsable or below 1 clamps to 1."""
	text = _first(raw)
	if text is None:
		return 1
	m = RE_LEADING_INT.match(text)
	if not m:
		logger.debug(f"[Resolver] Unparsable page {text!r}, clamping to 1")
		return 1
	page = int(m.group(1))
	if page < 1:
		logger.debug(f"[Resolver] Page {page} below 1, clamping to 1")
		return 1
	return page


def resolve(raw_params: Mapping[str, Any]) -> QueryState:
	"""
	Map raw URL parameters (`q`, `sortBy`, `page`) to a QueryState.
	A non-empty `q` always wins over `sortBy`; `sortBy=topRated` selects top rated,
	anything else (including absent) selects popular.
	"""
	page = parse_page(raw_params.get("page"))
	term = _first(raw_params.get("q")) or None  # empty string means no search
	if term:
		state = QueryState(mode=SortMode.SEARCH, term=term, page=page)
	elif _first(raw_params.get("sortBy")) == SORT_TOP_RATED:
		state = QueryState(mode=SortMode.TOP_RATED, page=page)
	else:
		state = QueryState(mode=SortMode.POPULAR, page=page)
	logger.debug(f"[Resolver] {dict(raw_params)} -> {state}")
	return state


def to_params(state: QueryState) -> Dict[str, str]:
	"""Canonical URL parameters for a QueryState (inverse of resolve for canonical input)."""
	if state.mode is SortMode.SEARCH:
		params = {"q": state.term}
	else:
		params = {"sortBy": SORT_TOP_RATED if state.mode is SortMode.TOP_RATED else SORT_POPULAR}
	params["page"] = str(state.page)
	return params


def flatten(raw_params: Mapping[str, Any]) -> Dict[str, str]:
	"""Plain str -> str copy of a parameter mapping, dropping absent values."""
	flat = {}
	for key in raw_params:
		value = _first(raw_params.get(key))
		if value is not None:
			flat[key] = value
	return flat
