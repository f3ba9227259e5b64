"""
Deferred values and the render gate.
A Deferred wraps an in-flight catalog call (a concurrent.futures.Future) and exposes
a small PENDING -> RESOLVED | FAILED state machine. The RenderGate turns a Deferred
into render frames: a placeholder right away, then exactly one terminal frame.
"""

import asyncio  # event-loop consumers await settlement without blocking the loop
import threading  # guards the one-time state transition
from concurrent.futures import Future  # producer side of the deferred value
from dataclasses import dataclass  # frame container
from enum import Enum  # explicit state enum
from typing import AsyncIterator, Callable, Iterator, List, Optional  # type annotations

from loguru import logger  # console logging

from .models import MoviePage  # the only value a deferred resolves to


class DeferredState(Enum):
	PENDING = "pending"
	RESOLVED = "resolved"
	FAILED = "failed"


class Deferred:
	"""
	A MoviePage that may not exist yet.
	Settles exactly once; a new request gets a new Deferred. Errors raised by the
	producer are captured as the FAILED state and never re-raised to consumers.
	"""

	def __init__(self, future: Future, label: str = "catalog"):
		self.label = label  # short description for logs, e.g. "search('matrix', 1)"
		self._future = future
		self._lock = threading.Lock()
		self._state = DeferredState.PENDING
		self._value: Optional[MoviePage] = None
		self._error: Optional[BaseException] = None
		self._callbacks: List[Callable[["Deferred"], None]] = []
		self._settled = threading.Event()
		future.add_done_callback(self._on_done)

	@classmethod
	def resolved(cls, page: MoviePage, label: str = "catalog") -> "Deferred":
		fut: Future = Future()
		fut.set_result(page)
		return cls(fut, label=label)

	@classmethod
	def failed(cls, error: BaseException, label: str = "catalog") -> "Deferred":
		fut: Future = Future()
		fut.set_exception(error)
		return cls(fut, label=label)

	def _on_done(self, future: Future) -> None:
		if future.cancelled():
			state, value, error = DeferredState.FAILED, None, RuntimeError(f"{self.label} was cancelled")
		elif future.exception() is not None:
			state, value, error = DeferredState.FAILED, None, future.exception()
		elif not isinstance(future.result(), MoviePage):
			bad = type(future.result()).__name__
			state, value, error = DeferredState.FAILED, None, TypeError(f"{self.label} produced {bad}, expected MoviePage")
		else:
			state, value, error = DeferredState.RESOLVED, future.result(), None

		with self._lock:
			if self._state is not DeferredState.PENDING:
				return
			self._state, self._value, self._error = state, value, error
			callbacks, self._callbacks = self._callbacks, []
		self._settled.set()

		if error is not None:
			logger.warning(f"[Gate] {self.label} failed: {error}")
		else:
			logger.debug(f"[Gate] {self.label} resolved with {len(value.results)} results")
		for cb in callbacks:
			self._run_callback(cb)

	def _run_callback(self, cb: Callable[["Deferred"], None]) -> None:
		try:
			cb(self)
		except Exception:
			logger.exception(f"[Gate] settle callback for {self.label} raised")

	@property
	def state(self) -> DeferredState:
		return self._state

	@property
	def value(self) -> Optional[MoviePage]:
		"""The resolved page, or None while pending / after failure."""
		return self._value

	@property
	def error(self) -> Optional[BaseException]:
		"""The failure cause, or None unless FAILED."""
		return self._error

	@property
	def done(self) -> bool:
		return self._state is not DeferredState.PENDING

	def on_settle(self, callback: Callable[["Deferred"], None]) -> None:
		"""Register a callback fired once on settlement (immediately if already settled)."""
		with self._lock:
			if self._state is DeferredState.PENDING:
				self._callbacks.append(callback)
				return
		self._run_callback(callback)

	def cancel(self) -> bool:
		"""Cancel the underlying call if it has not started; the deferred then ends FAILED."""
		cancelled = self._future.cancel()
		if cancelled:
			logger.debug(f"[Gate] {self.label} cancelled before it started")
		return cancelled

	def settle(self, timeout: Optional[float] = None) -> DeferredState:
		"""Block until settled or timeout; returns the current state and never raises."""
		self._settled.wait(timeout)
		return self._state

	async def wait(self) -> DeferredState:
		"""Await settlement from an asyncio event loop."""
		if self.done:
			return self._state
		loop = asyncio.get_running_loop()
		settled = asyncio.Event()
		# Settlement happens on a worker thread; hop back onto the loop to wake the waiter
		self.on_settle(lambda _: loop.call_soon_threadsafe(settled.set))
		await settled.wait()
		return self._state

	def __repr__(self):
		return f"Deferred({self.label}, {self._state.name})"


@dataclass(frozen=True)
class GateFrame:
	"""One render pass over the deferred sub-tree."""
	state: DeferredState
	page: Optional[MoviePage] = None  # set when RESOLVED
	error: Optional[str] = None  # human-readable message when FAILED

	@property
	def placeholder(self) -> bool:
		return self.state is DeferredState.PENDING


class RenderGate:
	"""
	Delimits the part of the page that depends on a Deferred.
	Consumers get a placeholder frame immediately, then one terminal frame once the
	deferred settles. Nothing outside the gate waits on the catalog call.
	"""

	def __init__(self, deferred: Deferred):
		self.deferred = deferred

	def _terminal_frame(self) -> GateFrame:
		if self.deferred.state is DeferredState.RESOLVED:
			return GateFrame(DeferredState.RESOLVED, page=self.deferred.value)
		return GateFrame(DeferredState.FAILED, error=str(self.deferred.error) or type(self.deferred.error).__name__)

	def frames(self, timeout: Optional[float] = None) -> Iterator[GateFrame]:
		"""Synchronous frames; blocks between the placeholder and the terminal frame."""
		yield GateFrame(DeferredState.PENDING)
		if self.deferred.settle(timeout) is DeferredState.PENDING:
			return  # caller-imposed timeout, the gate itself never gives up
		yield self._terminal_frame()

	async def aframes(self) -> AsyncIterator[GateFrame]:
		"""Asynchronous frames for event-loop consumers such as streaming responses."""
		yield GateFrame(DeferredState.PENDING)
		await self.deferred.wait()
		yield self._terminal_frame()
