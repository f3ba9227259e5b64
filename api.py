"""
FastAPI server exposing the movie listing.
Endpoints:
- GET /health: basic health check
- GET /movies?q=...&sortBy=popular|topRated&page=N: streams the listing as NDJSON frames
  (the page shell first, then the movies or an error once the catalog call settles)
- GET /movies/state: the canonical query state for a set of URL parameters
- WS /ws/movies: live listing driven by search edits (debounced), sort and page actions
"""

# Import standard libraries for the event loop, output streams and URL building
import asyncio  # task management for live sessions
import json  # decoding websocket messages
import sys  # log sink
from typing import AsyncIterator, Dict, Optional  # precise typing for clarity
from urllib.parse import urlencode  # canonical query strings

# Import FastAPI primitives and Pydantic base for response handling
from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect  # FastAPI primitives
from fastapi.responses import StreamingResponse  # chunked NDJSON output
from pydantic import BaseModel  # frame base type

# Import our internal modules for resolution, dispatch and rendering
from src.catalog_client import TMDBClient  # remote catalog
from src.config import get_settings  # environment-driven settings
from src.deferred import Deferred, RenderGate  # deferred value and its render boundary
from src.dispatcher import RequestDispatcher  # one catalog call per request
from src.interaction import PaginationControls, SearchBox, sort_params, with_page  # user actions -> params
from src.models import QueryState  # canonical request
from src.query_resolver import flatten, resolve  # params -> QueryState
from src.schemas import MoviesFrame, QueryStateOut, gate_frame, shell_frame, state_out  # wire frames

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title="Movie Listing API", version="1.0.0")  # web app

# Global dispatcher, created on first use so tests can override it
DISPATCHER: Optional[RequestDispatcher] = None  # shared across requests


def get_dispatcher() -> Optional[RequestDispatcher]:
	"""Return the shared dispatcher, or None when no catalog key is configured."""
	global DISPATCHER
	if DISPATCHER is None:
		settings = get_settings()
		if not settings.tmdb_api_key:
			return None
		client = TMDBClient(settings.tmdb_api_key, base_url=settings.tmdb_base_url, timeout=settings.tmdb_timeout)
		DISPATCHER = RequestDispatcher(client, max_workers=settings.catalog_workers)
		logger.info(f"[API] Catalog dispatcher ready ({settings.catalog_workers} workers)")
	return DISPATCHER


# FastAPI startup hook to configure logging once
@app.on_event("startup")
async def startup_event():
	"""Route loguru output through the configured log level."""
	settings = get_settings()
	logger.remove()  # drop the default sink
	logger.add(sys.stderr, level=settings.log_level.upper())  # re-add at the configured level
	logger.info(f"[API] Startup complete. Catalog configured: {bool(settings.tmdb_api_key)}")


# FastAPI shutdown hook to release worker threads
@app.on_event("shutdown")
async def shutdown_event():
	global DISPATCHER
	if DISPATCHER is not None:
		DISPATCHER.shutdown()
		DISPATCHER = None


async def listing_frames(state: QueryState, params: Dict[str, str], deferred: Deferred) -> AsyncIterator[BaseModel]:
	"""Shell first, then the single terminal frame of the render gate."""
	image_base = get_settings().tmdb_image_base
	yield shell_frame(state)
	async for frame in RenderGate(deferred).aframes():
		out = gate_frame(frame, state, params, image_base=image_base)
		if out is not None:
			yield out


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"catalog_configured": bool(get_settings().tmdb_api_key),  # True if the catalog can be called
	}


# Canonical state for a set of parameters, no catalog call involved
@app.get("/movies/state", response_model=QueryStateOut)
async def movies_state(request: Request):
	"""Resolve URL parameters to the canonical query state."""
	return state_out(resolve(request.query_params))


# Main listing endpoint: resolves, dispatches, and streams frames as they become available
@app.get("/movies")
async def movies(request: Request, dispatcher: Optional[RequestDispatcher] = Depends(get_dispatcher)):
	"""Stream the listing page as NDJSON: shell, then movies or error."""
	if dispatcher is None:
		logger.warning("[API] /movies requested but no catalog key is configured")
		raise HTTPException(status_code=503, detail="Catalog API key is not configured")

	params = flatten(request.query_params)  # current URL parameters
	state = resolve(params)  # canonical request
	deferred = dispatcher.dispatch(state)  # starts the catalog call, does not wait

	async def body():
		async for frame in listing_frames(state, params, deferred):
			yield frame.model_dump_json() + "\n"
		logger.info(f"[API] /movies {state.mode.value} page={state.page} -> {deferred.state.name}")

	return StreamingResponse(body(), media_type="application/x-ndjson")


class LiveSession:
	"""
	One websocket client's view of the listing.
	`params` mirrors the client's URL; every navigation replaces it wholesale and
	recomputes everything else from it.
	"""

	def __init__(self, websocket: WebSocket, dispatcher: RequestDispatcher):
		self.websocket = websocket
		self.dispatcher = dispatcher
		self.params: Dict[str, str] = {}
		self.controls: Optional[PaginationControls] = None
		self._task: Optional[asyncio.Task] = None
		self._deferred: Optional[Deferred] = None

	def navigate(self, params: Dict[str, str]) -> None:
		"""Switch to `params`; frames still streaming for an older navigation are abandoned."""
		self._abandon()
		self.params = params
		self.controls = None
		self._task = asyncio.ensure_future(self._render(params))
		self._task.add_done_callback(self._render_done)

	def _abandon(self) -> None:
		if self._task is not None and not self._task.done():
			self._task.cancel()
		if self._deferred is not None:
			self._deferred.cancel()  # drops the catalog call if it has not started yet
			self._deferred = None

	@staticmethod
	def _render_done(task: asyncio.Task) -> None:
		if task.cancelled():
			return
		error = task.exception()
		if error is not None:
			logger.warning(f"[API] live render stopped: {error!r}")

	async def _render(self, params: Dict[str, str]) -> None:
		state = resolve(params)
		await self.websocket.send_json({"type": "navigate", "search": f"?{urlencode(params)}", "params": params})
		deferred = self._deferred = self.dispatcher.dispatch(state)
		async for frame in listing_frames(state, params, deferred):
			if isinstance(frame, MoviesFrame):
				self.controls = PaginationControls(state.page, frame.pagination.totalPages, params)
			await self.websocket.send_json(frame.model_dump())

	def step(self, direction: str) -> bool:
		"""Follow the Previous ("previous") or Next ("next") control if it is enabled."""
		if direction not in ("previous", "next"):
			raise ValueError(f"unknown page direction {direction!r}")
		if self.controls is None:
			return False
		page = self.controls.next_page if direction == "next" else self.controls.previous_page
		if page is None:
			return False
		self.navigate(with_page(self.params, page))
		return True

	def close(self) -> None:
		self._abandon()


# Live listing over a websocket: the client reports user actions, the server navigates
@app.websocket("/ws/movies")
async def live_movies(websocket: WebSocket, dispatcher: Optional[RequestDispatcher] = Depends(get_dispatcher)):
	"""
	Actions (JSON objects with an `action` key):
	- open {params}: initial URL parameters
	- edit {q}: search box edit, submitted after the debounce quiet period
	- submit {q}: search button, submitted at once
	- sort {sortBy}: sort selection, resets search and page
	- page {direction: previous|next}: pagination controls
	"""
	await websocket.accept()
	if dispatcher is None:
		await websocket.send_json({"type": "error", "message": "Catalog API key is not configured"})
		await websocket.close(code=1011)
		return

	session = LiveSession(websocket, dispatcher)
	search_box = SearchBox(session.navigate, wait=get_settings().search_debounce_ms / 1000)
	logger.info("[API] live session opened")
	try:
		while True:
			try:
				msg = json.loads(await websocket.receive_text())
			except json.JSONDecodeError:
				await websocket.send_json({"type": "error", "message": "Messages must be JSON objects"})
				continue
			action = msg.get("action") if isinstance(msg, dict) else None
			if action == "open":
				raw_params = msg.get("params") or {}
				if not isinstance(raw_params, dict):
					await websocket.send_json({"type": "error", "message": "open.params must be an object"})
					continue
				session.navigate(flatten(raw_params))
			elif action == "edit":
				search_box.edit(str(msg.get("q") or ""))
			elif action == "submit":
				search_box.submit(str(msg.get("q") or ""))
			elif action == "sort":
				search_box.cancel()  # an explicit sort supersedes a half-typed search
				session.navigate(sort_params(session.params, str(msg.get("sortBy") or "")))
			elif action == "page":
				direction = msg.get("direction")
				if direction not in ("previous", "next"):
					await websocket.send_json({"type": "error", "message": f"Unknown page direction: {direction!r}"})
				elif not session.step(direction):
					await websocket.send_json({"type": "error", "message": "Page control is disabled"})
			else:
				await websocket.send_json({"type": "error", "message": f"Unknown action: {action!r}"})
	except WebSocketDisconnect:
		logger.info("[API] live session closed")
	finally:
		search_box.cancel()
		session.close()
