import abc
import typing

Listener = typing.Callable[..., typing.Any]


class ReplicationSession(metaclass=abc.ABCMeta):
	"""Handle to a (possibly continuous) background synchronization process
	
	Replication itself is carried out elsewhere; a store only needs to be
	able to stop it and to learn when it has stopped. Implementations call
	:meth:`emit` with the events of the underlying process and must emit
	``"complete"`` exactly once after each :meth:`cancel` (or once at the end
	of a one-shot run).
	
	Attributes
	----------
	live
		Whether the session keeps re-syncing until cancelled rather than
		running once
	"""
	
	__slots__ = ("live", "_listeners")
	
	live: bool
	_listeners: typing.Dict[str, typing.List[typing.Tuple[Listener, bool]]]
	
	
	def __init__(self, *, live: bool = False):
		self.live = live
		self._listeners = {}
	
	
	def on(self, event: str, listener: Listener) -> None:
		"""Calls *listener* every time *event* is emitted"""
		self._listeners.setdefault(event, []).append((listener, False))
	
	
	def once(self, event: str, listener: Listener) -> None:
		"""Calls *listener* the next time *event* is emitted, then forgets it"""
		self._listeners.setdefault(event, []).append((listener, True))
	
	
	def off(self, event: str, listener: Listener) -> None:
		"""Removes every registration of *listener* for *event*"""
		self._listeners[event] = [
			entry for entry in self._listeners.get(event, []) if entry[0] is not listener
		]
	
	
	def emit(self, event: str, *args: typing.Any) -> bool:
		"""Synchronously calls the listeners of *event* in registration order
		
		Returns whether there was any listener to call.
		"""
		entries = self._listeners.get(event, [])
		self._listeners[event] = [entry for entry in entries if not entry[1]]
		for listener, _ in entries:
			listener(*args)
		return len(entries) > 0
	
	
	@abc.abstractmethod
	def cancel(self) -> None:
		"""Requests the session to stop
		
		This may emit ``"complete"`` before returning.
		"""
		pass
