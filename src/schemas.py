"""
Wire schemas for the listing page.
The same frames are streamed by the API and rendered by the Streamlit UI, so both
API mode and local mode render from one shape.
"""

from typing import Any, Dict, List, Literal, Mapping, Optional  # type annotations

from pydantic import BaseModel  # response schema definitions

from .deferred import GateFrame, DeferredState  # render gate output
from .interaction import PaginationControls  # prev/next view model
from .models import DEFAULT_IMAGE_BASE, QueryState, sort_label  # core types
from .query_resolver import to_params  # canonical parameters


class QueryStateOut(BaseModel):
	mode: str  # popular | topRated | search
	term: Optional[str] = None
	page: int
	params: Dict[str, str]  # canonical URL parameters


class ShellFrame(BaseModel):
	"""Everything that renders without waiting for the catalog."""
	type: Literal["shell"] = "shell"
	heading: str
	searchQuery: Optional[str] = None
	sortBy: str
	sortLabel: str
	currentPage: int
	state: QueryStateOut


class MovieOut(BaseModel):
	id: str
	title: str
	poster_url: Optional[str] = None
	href: str  # detail page link


class PaginationOut(BaseModel):
	currentPage: int
	totalPages: int
	label: str  # "Page X of Y"
	previous: Optional[str] = None  # link target, None when disabled
	next: Optional[str] = None


class MoviesFrame(BaseModel):
	type: Literal["movies"] = "movies"
	results: List[MovieOut]
	pagination: PaginationOut


class ErrorFrame(BaseModel):
	type: Literal["error"] = "error"
	message: str


def state_out(state: QueryState) -> QueryStateOut:
	return QueryStateOut(mode=state.mode.value, term=state.term, page=state.page, params=to_params(state))


def shell_frame(state: QueryState) -> ShellFrame:
	return ShellFrame(
		heading=state.heading,
		searchQuery=state.term,
		sortBy=state.sort_by,
		sortLabel=sort_label(state.sort_by),
		currentPage=state.page,
		state=state_out(state),
	)


def gate_frame(
	frame: GateFrame,
	state: QueryState,
	params: Mapping[str, Any],
	image_base: str = DEFAULT_IMAGE_BASE,
) -> Optional[BaseModel]:
	"""Serialize a terminal gate frame; the placeholder frame has no payload."""
	if frame.state is DeferredState.PENDING:
		return None
	if frame.state is DeferredState.FAILED:
		return ErrorFrame(message=frame.error or "Catalog request failed")
	page = frame.page
	# Pagination is anchored on the requested page, as the URL shows it
	controls = PaginationControls.for_page(state.page, page, params)
	return MoviesFrame(
		results=[
			MovieOut(id=m.id, title=m.title, poster_url=m.poster_url(image_base), href=f"/movies/{m.id}")
			for m in page.results
		],
		pagination=PaginationOut(**controls.to_dict()),
	)
