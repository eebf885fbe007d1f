import logging
import typing


logger = logging.getLogger(__name__)

CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A registry of listeners for a fixed set of named events.

	Listeners run synchronously, in registration order, from whatever timer
	callback emits the event. A listener that raises is logged and skipped so
	one faulty UI hook cannot break a playback session.
	"""

	def __init__ (self, event_names: typing.Iterable[str]) -> None:

		"""
		Initialize an empty registry that accepts only ``event_names``.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {name: [] for name in event_names}


	def _check_name (self, event_name: str) -> None:

		if event_name not in self._listeners:
			raise ValueError(f"Unknown event {event_name!r}. Expected one of {sorted(self._listeners)}")


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._check_name(event_name)
		self._listeners[event_name].append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		self._check_name(event_name)

		if callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def emit (self, event_name: str, *args: typing.Any) -> None:

		"""
		Call every listener for ``event_name`` with ``args``.
		"""

		self._check_name(event_name)

		# Copy so listeners may unregister themselves while being called.
		for callback in list(self._listeners[event_name]):

			try:
				callback(*args)
			except Exception:
				logger.exception(f"Listener for {event_name!r} raised")
