"""
Streamlit UI for the Movie Listing.
The URL query parameters (q, sortBy, page) are the only state: every rerun resolves them again.
Fetches the listing from the FastAPI server at http://localhost:8000 (streamed NDJSON frames),
or calls the catalog directly through the local dispatcher when the API is unreachable.

Run API (optional):   uvicorn api:app --reload
Run UI:                streamlit run streamlit_app.py
"""

# JSON decoding for the streamed frames
import json  # parse NDJSON lines
# HTTP client to call the API when running in API mode
import requests  # make web requests to the FastAPI server
# Streamlit framework to build a simple interactive UI
import streamlit as st  # UI primitives
# Typing to make function signatures clearer
from typing import Any, Dict, Iterator, Optional  # type annotations

# Local imports shared with the API
from src.catalog_client import TMDBClient  # remote catalog for local mode
from src.config import get_settings  # environment-driven settings
from src.deferred import RenderGate  # placeholder first, results once settled
from src.dispatcher import RequestDispatcher  # one catalog call per request
from src.interaction import PaginationControls, search_params, sort_params, with_page  # user actions -> params
from src.models import SORT_POPULAR, SORT_TOP_RATED, QueryState, sort_label  # canonical request
from src.query_resolver import flatten, resolve  # params -> QueryState
from src.schemas import gate_frame  # same frame shape as the API

settings = get_settings()  # env / .env configuration

# Configure Streamlit page (title and layout width)
st.set_page_config(page_title="Movies", layout="wide")  # wide layout


# Cache the local dispatcher so the HTTP session and thread pool live across reruns
# (a raised error is not cached, so a missing key is retried on every rerun instead of sticking)
@st.cache_resource(show_spinner=False)
def build_local_dispatcher() -> RequestDispatcher:
	"""Create a dispatcher backed by TMDB directly (requires MOVIES_TMDB_API_KEY)."""
	client = TMDBClient(settings.tmdb_api_key, base_url=settings.tmdb_base_url, timeout=settings.tmdb_timeout)
	return RequestDispatcher(client, max_workers=settings.catalog_workers)


def init_local_dispatcher() -> Optional[RequestDispatcher]:
	try:
		return build_local_dispatcher()
	except ValueError as e:
		# Show an error in the UI so users know local mode failed
		st.error(f"Failed to initialize local catalog client: {e}")
		return None


def navigate(params: Dict[str, str]) -> None:
	"""Replace the URL parameters in one update; Streamlit reruns after the callback."""
	st.query_params.from_dict(params)


def on_search_submit() -> None:
	# Streamlit commits text inputs on Enter / blur, which is already a quiet boundary; q is sent verbatim
	navigate(search_params(st.session_state["search_box"]))


def on_sort_change() -> None:
	navigate(sort_params(flatten(st.query_params), st.session_state["sort_select"]))


def on_page(page: int) -> None:
	navigate(with_page(flatten(st.query_params), page))


def api_frames(api_url: str, params: Dict[str, str]) -> Iterator[Dict[str, Any]]:
	"""Frames from the API's NDJSON stream, yielded as each line arrives."""
	with requests.get(f"{api_url}/movies", params=params, stream=True, timeout=(3, None)) as resp:
		resp.raise_for_status()  # 503 when the API has no catalog key
		for line in resp.iter_lines():
			if line:
				yield json.loads(line)


def local_frames(dispatcher: RequestDispatcher, state: QueryState, params: Dict[str, str]) -> Iterator[Dict[str, Any]]:
	"""Same frames as the API, produced in-process through the render gate."""
	deferred = dispatcher.dispatch(state)  # catalog call starts here, we do not wait
	for frame in RenderGate(deferred).frames():
		out = gate_frame(frame, state, params, image_base=settings.tmdb_image_base)
		if out is None:
			yield {"type": "shell"}  # placeholder pass
		else:
			yield out.model_dump()


def render_pagination(pagination: Dict[str, Any], where: str) -> None:
	"""Previous / Page X of Y / Next, buttons disabled at the ends."""
	controls = PaginationControls(pagination["currentPage"], pagination["totalPages"], flatten(st.query_params))
	c1, c2, c3 = st.columns([1, 2, 1])
	with c1:
		st.button(
			"Previous",
			key=f"prev_{where}",
			disabled=not controls.has_previous,
			on_click=on_page,
			args=(controls.previous_page,),
		)
	with c2:
		st.markdown(f"<div style='text-align:center'>{controls.label}</div>", unsafe_allow_html=True)
	with c3:
		st.button(
			"Next",
			key=f"next_{where}",
			disabled=not controls.has_next,
			on_click=on_page,
			args=(controls.next_page,),
		)


def render_movies(frame: Dict[str, Any]) -> None:
	"""Grid of posters and titles between two pagination bars."""
	render_pagination(frame["pagination"], "top")
	results = frame.get("results", [])
	if not results:
		st.info("No movies found.")
	cols_per_row = 5  # grid width
	for start in range(0, len(results), cols_per_row):
		cols = st.columns(cols_per_row)
		for col, movie in zip(cols, results[start:start + cols_per_row]):
			with col:
				if movie.get("poster_url"):
					st.image(movie["poster_url"], width="stretch")  # poster
				st.markdown(f"**{movie['title']}**")  # title
	render_pagination(frame["pagination"], "bottom")


# Everything below is recomputed from the URL on every rerun
params = flatten(st.query_params)  # current URL parameters
state = resolve(params)  # canonical request

# Sidebar contains configuration controls
with st.sidebar:
	st.header("Settings")  # section label
	api_url = st.text_input("API URL", settings.api_url)  # where the API lives
	use_local = st.toggle("Call the catalog directly", value=False, help="If enabled or the API is unreachable, the app calls TMDB itself.")

# If not forcing local, check quickly whether the API is reachable
api_available = False  # default assumption
if not use_local:
	try:
		h = requests.get(f"{api_url}/health", timeout=3)  # ping API health endpoint
		api_available = h.ok and h.json().get("catalog_configured", False)  # reachable and able to serve
	except requests.RequestException:
		api_available = False  # probe failed
	if not api_available:
		st.sidebar.info("API not reachable; calling the catalog directly.")  # inform user

local_dispatcher: Optional[RequestDispatcher] = None  # placeholder
if use_local or not api_available:
	local_dispatcher = init_local_dispatcher()

# Page shell: renders immediately, independent of the catalog call
st.title(state.heading)

# Keep the widgets in step with the URL when it changes underneath them
if st.session_state.get("_synced_params") != params:
	st.session_state["search_box"] = state.term or ""
	st.session_state["sort_select"] = state.sort_by
	st.session_state["_synced_params"] = params

col1, col2 = st.columns([3, 1])  # search box and sort selector side by side
with col1:
	st.text_input("Search movies", key="search_box", placeholder="Search movies...", on_change=on_search_submit)
with col2:
	st.selectbox(
		"Sort",
		options=[SORT_POPULAR, SORT_TOP_RATED],
		format_func=sort_label,
		key="sort_select",
		on_change=on_sort_change,
	)

# Deferred section: placeholder while pending, then results or error
placeholder = st.empty()
try:
	if local_dispatcher is not None:
		frames = local_frames(local_dispatcher, state, params)
	elif api_available:
		frames = api_frames(api_url, params)
	else:
		frames = iter([{"type": "error", "message": "No catalog available: start the API or set MOVIES_TMDB_API_KEY."}])

	for frame in frames:
		if frame["type"] == "shell":
			placeholder.caption("Loading movies...")  # pending
		elif frame["type"] == "movies":
			with placeholder.container():
				render_movies(frame)
		elif frame["type"] == "error":
			placeholder.error(f"Could not load movies: {frame['message']}")
except requests.RequestException as e:  # network/API errors
	placeholder.error(f"API request failed: {e}")  # show human-friendly message

# Show a footer indicator of current mode
st.sidebar.markdown("---")  # separator
if local_dispatcher is not None:
	st.sidebar.caption("Mode: direct catalog calls")  # mode label
else:
	st.sidebar.caption("Mode: API client (ensure uvicorn api:app --reload is running)")  # mode label
