"""
Catalog client module.
Thin wrapper around The Movie Database (TMDB) exposing the three listing operations
the service needs: search, popular, and top rated. Calls are synchronous; the
dispatcher runs them off the caller's thread.
"""

from typing import Any, Dict, List, Optional, Protocol  # type annotations

# HTTP client for talking to the catalog API
import requests  # sessions, timeouts, HTTP errors

from loguru import logger  # console logging

from .models import MoviePage, MovieSummary  # parsed response types


class CatalogError(Exception):
	"""Raised when a catalog call fails (network, HTTP status, or malformed body)."""

	def __init__(self, message: str, status_code: Optional[int] = None):
		self.status_code = status_code
		super().__init__(message)


class CatalogClient(Protocol):
	"""Contract the dispatcher relies on; each call returns one page or raises CatalogError."""

	def search(self, term: str, page: int) -> MoviePage: ...

	def list_popular(self, page: int) -> MoviePage: ...

	def list_top_rated(self, page: int) -> MoviePage: ...


def parse_movie_page(payload: Any, requested_page: int) -> MoviePage:
	"""Convert a TMDB list/search JSON body into a MoviePage, rejecting malformed bodies."""
	if not isinstance(payload, dict):
		raise CatalogError(f"Unexpected catalog payload type: {type(payload).__name__}")
	raw_results = payload.get("results")
	if not isinstance(raw_results, list):
		raise CatalogError("Catalog payload has no 'results' list")

	results: List[MovieSummary] = []
	for item in raw_results:
		if not isinstance(item, dict) or item.get("id") is None:
			raise CatalogError(f"Catalog result without an id: {item!r}")
		results.append(
			MovieSummary(
				id=str(item["id"]),
				title=item.get("title") or item.get("original_title") or "",
				poster_path=item.get("poster_path") or None,
			)
		)

	try:
		total_pages = int(payload.get("total_pages") or 1)
		current_page = int(payload.get("page") or requested_page)
	except (TypeError, ValueError) as e:
		raise CatalogError(f"Catalog payload has invalid paging fields: {e}") from e

	# An empty result set still counts as one page
	return MoviePage(
		results=tuple(results),
		total_pages=max(1, total_pages),
		current_page=max(1, current_page),
	)


class TMDBClient:
	"""
	Catalog client backed by the TMDB v3 REST API.
	Accepts either a v3 API key (sent as `api_key`) or a v4 read access token (sent as a bearer header).
	No retries here: a failure surfaces to the caller as CatalogError.
	"""
	DEFAULT_BASE_URL = "https://api.themoviedb.org/3"

	def __init__(
		self,
		api_key: str,
		base_url: str = DEFAULT_BASE_URL,
		timeout: float = 10.0,
		session: Optional[requests.Session] = None,
	):
		if not api_key:
			raise ValueError("TMDB API key is required")
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout
		self.session = session or requests.Session()
		self._params: Dict[str, str] = {}
		# v4 tokens are JWTs, far longer than the 32-char v3 keys
		if api_key.count(".") == 2:
			self.session.headers["Authorization"] = f"Bearer {api_key}"
		else:
			self._params["api_key"] = api_key
		self.session.headers.setdefault("Accept", "application/json")

	def _get(self, path: str, page: int, **params) -> MoviePage:
		params.update(self._params)
		params["page"] = page
		url = f"{self.base_url}{path}"
		logger.debug(f"[Catalog] GET {path} page={page}")
		try:
			resp = self.session.get(url, params=params, timeout=self.timeout)
			resp.raise_for_status()
			payload = resp.json()
		except requests.HTTPError as e:
			status = e.response.status_code if e.response is not None else None
			logger.warning(f"[Catalog] {path} failed with HTTP {status}")
			raise CatalogError(f"Catalog request failed: HTTP {status}", status_code=status) from e
		except requests.JSONDecodeError as e:  # subclasses RequestException, so it goes first
			logger.warning(f"[Catalog] {path} returned a non-JSON body")
			raise CatalogError(f"Catalog response is not valid JSON: {e}") from e
		except requests.RequestException as e:
			logger.warning(f"[Catalog] {path} network error: {e}")
			raise CatalogError(f"Catalog request failed: {e}") from e
		except ValueError as e:  # non-requests JSON decoders
			raise CatalogError(f"Catalog response is not valid JSON: {e}") from e
		movie_page = parse_movie_page(payload, page)
		logger.info(f"[Catalog] {path} page {movie_page.current_page}/{movie_page.total_pages}: {len(movie_page.results)} results")
		return movie_page

	def search(self, term: str, page: int) -> MoviePage:
		return self._get("/search/movie", page, query=term)

	def list_popular(self, page: int) -> MoviePage:
		return self._get("/movie/popular", page)

	def list_top_rated(self, page: int) -> MoviePage:
		return self._get("/movie/top_rated", page)

	def close(self) -> None:
		self.session.close()
