"""
Request dispatch module.
Maps a QueryState to exactly one catalog operation and returns a Deferred without waiting.
"""

from concurrent.futures import Executor, ThreadPoolExecutor  # off-thread catalog calls
from typing import Optional  # type annotations

from loguru import logger  # console logging

from .catalog_client import CatalogClient  # catalog contract
from .deferred import Deferred  # not-yet-resolved result handle
from .models import QueryState, SortMode  # canonical request


class RequestDispatcher:
	"""
	Issues one catalog call per QueryState.
	The call runs on an executor so `dispatch` returns immediately; failures are
	captured by the Deferred, never retried here.
	"""

	def __init__(self, client: CatalogClient, executor: Optional[Executor] = None, max_workers: int = 4):
		self.client = client
		self._owns_executor = executor is None
		self.executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catalog")

	def dispatch(self, state: QueryState) -> Deferred:
		"""Start the catalog call for `state` and hand back its Deferred."""
		if state.mode is SortMode.SEARCH:
			label = f"search({state.term!r}, {state.page})"
			call, args = self.client.search, (state.term, state.page)
		elif state.mode is SortMode.TOP_RATED:
			label = f"list_top_rated({state.page})"
			call, args = self.client.list_top_rated, (state.page,)
		else:
			label = f"list_popular({state.page})"
			call, args = self.client.list_popular, (state.page,)

		logger.info(f"[Dispatcher] {label}")
		try:
			future = self.executor.submit(call, *args)
		except RuntimeError as e:  # executor already shut down
			logger.error(f"[Dispatcher] could not start {label}: {e}")
			return Deferred.failed(e, label=label)
		return Deferred(future, label=label)

	def shutdown(self, wait: bool = False) -> None:
		"""Stop the executor if this dispatcher created it."""
		if self._owns_executor:
			self.executor.shutdown(wait=wait)
