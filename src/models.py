"""
Data models for the Movie Listing service.
Defines the core data structures shared by the resolver, dispatcher, render gate and UI.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
# Enum gives the three listing modes a closed set of values
from enum import Enum  # mode selector
# Import typing helpers for precise and self-documenting types
from typing import Optional, Tuple  # optional values and immutable sequences

# Fixed image host used to build poster URLs (w185 is the listing thumbnail size)
DEFAULT_IMAGE_BASE = "https://image.tmdb.org/t/p/w185"

# Raw values accepted in the `sortBy` URL parameter
SORT_POPULAR = "popular"
SORT_TOP_RATED = "topRated"


class SortMode(Enum):
	"""Which catalog operation a request maps to."""
	POPULAR = "popular"  # listPopular(page)
	TOP_RATED = "topRated"  # listTopRated(page)
	SEARCH = "search"  # search(term, page)


@dataclass(frozen=True)
class QueryState:
	"""
	Canonical request derived from URL parameters on every load.
	Never stored on its own: the URL is the source of truth and this is recomputed from it.
	"""
	mode: SortMode  # SEARCH iff term is non-empty
	term: Optional[str] = None  # search term, None when no search is active
	page: int = 1  # 1-based page number, always >= 1

	def __post_init__(self):
		# Keep the mode/term invariant impossible to violate by construction
		if (self.mode is SortMode.SEARCH) != bool(self.term):
			raise ValueError(f"mode {self.mode.name} is inconsistent with term {self.term!r}")
		if self.page < 1:
			raise ValueError(f"page must be >= 1, got {self.page}")

	@property
	def sort_by(self) -> str:
		"""Raw sort value for the selector; a search keeps the default."""
		return SORT_TOP_RATED if self.mode is SortMode.TOP_RATED else SORT_POPULAR

	@property
	def heading(self) -> str:
		"""Page heading shown above the listing."""
		if self.mode is SortMode.SEARCH:
			return "Search Results"
		if self.mode is SortMode.TOP_RATED:
			return "Top Rated Movies"
		return "Popular Movies"


def sort_label(sort_by: str) -> str:
	"""Button label for the sort selector."""
	return "Top Rated" if sort_by == SORT_TOP_RATED else "Popular"


@dataclass(frozen=True)
class MovieSummary:
	"""A single listing entry, read-only view of the catalog response."""
	id: str  # opaque identifier (TMDB ids are ints; kept as str for URLs)
	title: str  # display title
	poster_path: Optional[str] = None  # e.g. "/abc.jpg", None when the catalog has no poster

	def poster_url(self, base: str = DEFAULT_IMAGE_BASE) -> Optional[str]:
		"""Absolute poster URL against the image host, or None without a poster."""
		if not self.poster_path:
			return None
		return f"{base}{self.poster_path}"


@dataclass(frozen=True)
class MoviePage:
	"""
	One page of results as returned by the catalog.
	Lives for a single render cycle; nothing caches it across requests.
	"""
	results: Tuple[MovieSummary, ...] = field(default_factory=tuple)  # ordered results
	total_pages: int = 1  # >= 1 even for an empty result set
	current_page: int = 1  # page the catalog actually served

	def __post_init__(self):
		# A catalog that breaks these fails its own call instead of the render pass
		if self.total_pages < 1:
			raise ValueError(f"total_pages must be >= 1, got {self.total_pages}")
		if self.current_page < 1:
			raise ValueError(f"current_page must be >= 1, got {self.current_page}")
