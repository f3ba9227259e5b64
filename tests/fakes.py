"""
Test doubles shared by the test modules: an in-memory catalog and a manual-clock scheduler.
"""

import sys
import threading
from pathlib import Path
from typing import List, Optional, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from src.catalog_client import CatalogError
from src.models import MoviePage, MovieSummary


def make_page(n: int = 3, total_pages: int = 5, current_page: int = 1, prefix: str = "movie") -> MoviePage:
	return MoviePage(
		results=tuple(MovieSummary(id=str(i), title=f"{prefix} {i}", poster_path=f"/{i}.jpg") for i in range(n)),
		total_pages=total_pages,
		current_page=current_page,
	)


class FakeCatalog:
	"""Records every call; optionally fails or holds calls until released."""

	def __init__(self, page: Optional[MoviePage] = None, error: Optional[Exception] = None, hold: bool = False):
		self.page = page or make_page()
		self.error = error
		self.calls: List[Tuple] = []
		self.release = threading.Event()
		if not hold:
			self.release.set()

	def _answer(self, call: Tuple) -> MoviePage:
		self.calls.append(call)
		self.release.wait(5)
		if self.error is not None:
			raise self.error
		return self.page

	def search(self, term, page):
		return self._answer(("search", term, page))

	def list_popular(self, page):
		return self._answer(("list_popular", page))

	def list_top_rated(self, page):
		return self._answer(("list_top_rated", page))


def failing_catalog() -> FakeCatalog:
	return FakeCatalog(error=CatalogError("Catalog request failed: HTTP 503", status_code=503))


class _Handle:
	def __init__(self, when, fn, args):
		self.when = when
		self.fn = fn
		self.args = args
		self.cancelled = False

	def cancel(self):
		self.cancelled = True


class ManualScheduler:
	"""call_later-compatible scheduler driven by advance(); time is in seconds."""

	def __init__(self):
		self.now = 0.0
		self.handles: List[_Handle] = []

	def call_later(self, delay, fn, *args):
		handle = _Handle(self.now + delay, fn, args)
		self.handles.append(handle)
		return handle

	def advance_to(self, t: float) -> None:
		while True:
			due = [h for h in self.handles if not h.cancelled and h.when <= t + 1e-9]
			if not due:
				break
			handle = min(due, key=lambda h: h.when)
			self.handles.remove(handle)
			self.now = handle.when
			handle.fn(*handle.args)
		self.now = t
