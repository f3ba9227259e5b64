"""
Interaction controller module.
Translates user actions (typing, sort selection, page navigation) into new URL
parameter sets. Only free-text search is debounced; sort and pagination apply at once.
"""

import asyncio  # default scheduler is the running event loop
from dataclasses import dataclass, field  # pagination view model
from typing import Any, Callable, Dict, Mapping, Optional  # type annotations
from urllib.parse import urlencode  # building `?a=b` link targets

from loguru import logger  # console logging

from .models import MoviePage  # source of total page count
from .query_resolver import flatten  # plain str -> str parameter copies

DEFAULT_DEBOUNCE_SECONDS = 0.4

Params = Dict[str, str]


def search_params(term: str) -> Params:
	"""
	Parameters produced by submitting the search form.
	The form is a GET form holding only the search box, so the new URL carries `q`
	alone: page restarts at 1 and any sort selection is dropped.
	"""
	return {"q": term} if term else {}


def sort_params(params: Mapping[str, Any], sort_by: str) -> Params:
	"""Select a sort: set sortBy, abandon any search, and go back to page 1 in one update."""
	new = flatten(params)
	new["sortBy"] = sort_by
	new.pop("q", None)
	new["page"] = "1"
	return new


def with_page(params: Mapping[str, Any], page: int) -> Params:
	"""Same parameters, different page."""
	new = flatten(params)
	new["page"] = str(page)
	return new


def page_href(params: Mapping[str, Any], page: int) -> str:
	"""Relative link (`?...`) to `page` with all other parameters preserved."""
	return f"?{urlencode(with_page(params, page))}"


@dataclass
class PaginationControls:
	"""
	Previous / Next controls for a resolved page.
	Previous is enabled iff current_page > 1, Next iff current_page < total_pages.
	Link targets differ from the current parameters only in `page`.
	"""
	current_page: int
	total_pages: int
	params: Params = field(default_factory=dict)

	def __post_init__(self):
		if self.current_page < 1:
			raise ValueError(f"current_page must be >= 1, got {self.current_page}")
		if self.total_pages < 1:
			raise ValueError(f"total_pages must be >= 1, got {self.total_pages}")
		self.params = flatten(self.params)

	@classmethod
	def for_page(cls, current_page: int, movie_page: MoviePage, params: Mapping[str, Any]) -> "PaginationControls":
		return cls(current_page=current_page, total_pages=movie_page.total_pages, params=flatten(params))

	@property
	def has_previous(self) -> bool:
		return self.current_page > 1

	@property
	def has_next(self) -> bool:
		return self.current_page < self.total_pages

	@property
	def previous_page(self) -> Optional[int]:
		if not self.has_previous:
			return None
		# A hand-edited URL past the end steps back into range rather than to another empty page
		return min(self.current_page - 1, self.total_pages)

	@property
	def next_page(self) -> Optional[int]:
		return self.current_page + 1 if self.has_next else None

	@property
	def previous_href(self) -> Optional[str]:
		page = self.previous_page
		return page_href(self.params, page) if page is not None else None

	@property
	def next_href(self) -> Optional[str]:
		page = self.next_page
		return page_href(self.params, page) if page is not None else None

	@property
	def label(self) -> str:
		return f"Page {self.current_page} of {self.total_pages}"

	def to_dict(self) -> Dict[str, Any]:
		return {
			"currentPage": self.current_page,
			"totalPages": self.total_pages,
			"label": self.label,
			"previous": self.previous_href,
			"next": self.next_href,
		}


class Debouncer:
	"""
	Trailing debounce over any scheduler exposing `call_later(delay, fn, *args)`
	that returns a handle with `cancel()` (asyncio loops do).
	Each call replaces the pending handle; a replaced handle never runs the callback.
	"""

	def __init__(self, callback: Callable[..., Any], wait: float = DEFAULT_DEBOUNCE_SECONDS, scheduler: Any = None):
		self.callback = callback
		self.wait = wait
		self.scheduler = scheduler
		self._handle = None
		self._generation = 0  # bumps on every call/cancel so stale handles are no-ops

	def __call__(self, *args) -> None:
		self.cancel()
		scheduler = self.scheduler or asyncio.get_running_loop()
		self._handle = scheduler.call_later(self.wait, self._fire, self._generation, args)

	def _fire(self, generation: int, args: tuple) -> None:
		if generation != self._generation:
			return
		self._handle = None
		self._generation += 1
		self.callback(*args)

	def cancel(self) -> None:
		"""Drop the pending call, if any."""
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None
			logger.debug("[Debounce] pending submission superseded")
		self._generation += 1

	@property
	def pending(self) -> bool:
		return self._handle is not None


class SearchBox:
	"""Search box behavior: every edit restarts the quiet period, only the last one is submitted."""

	def __init__(
		self,
		navigate: Callable[[Params], Any],
		wait: float = DEFAULT_DEBOUNCE_SECONDS,
		scheduler: Any = None,
	):
		self.navigate = navigate
		self._debounced = Debouncer(self._submit, wait=wait, scheduler=scheduler)

	def edit(self, term: str) -> None:
		"""Record an edit; submission happens after `wait` seconds without another edit."""
		self._debounced(term)

	def submit(self, term: str) -> None:
		"""Explicit submit (search button / enter) skips the quiet period."""
		self._debounced.cancel()
		self._submit(term)

	def cancel(self) -> None:
		self._debounced.cancel()

	@property
	def pending(self) -> bool:
		return self._debounced.pending

	def _submit(self, term: str) -> None:
		params = search_params(term)
		logger.info(f"[Debounce] submitting search {params}")
		self.navigate(params)
