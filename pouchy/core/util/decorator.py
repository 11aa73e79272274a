import functools
import typing

import trio

from .. import normalize

T_co = typing.TypeVar("T_co", covariant=True)

Callback = typing.Callable[[typing.Optional[Exception], typing.Any], typing.Any]


class AwaitableWrapper(
		typing.AsyncContextManager[T_co],
		typing.Awaitable[T_co],
):
	_awaitable: typing.Awaitable[typing.AsyncContextManager[T_co]]
	_value: typing.AsyncContextManager[T_co]
	
	def __init__(self, awaitable: typing.Awaitable[typing.AsyncContextManager[T_co]]):
		self._awaitable = awaitable
	
	def __await__(self) -> typing.Generator[typing.Any, typing.Any, T_co]:
		return typing.cast(
			typing.Generator[typing.Any, typing.Any, T_co],
			self._awaitable.__await__()
		)
	
	async def __aenter__(self) -> T_co:
		self._value = await self._awaitable
		return await self._value.__aenter__()
	
	async def __aexit__(self, *args: typing.Any, **kwargs: typing.Any) -> typing.Optional[bool]:
		return await self._value.__aexit__(*args, **kwargs)


def awaitable_to_context_manager(
		func: typing.Callable[..., typing.Awaitable[typing.AsyncContextManager[T_co]]]
) -> typing.Callable[..., AwaitableWrapper[T_co]]:
	"""Wraps a async function returning an async context manager object in an
	extra async context manager object that lazily awaits the given functon and
	enters the result
	
	This way code such as the following may be simplified by dropping the extra
	``await`` keyword after the ``async with``::
	
		async with await Store.create(...) as store:
			...
	
	… therefore becomes::
	
		async with Store.create(...) as store:
			...
	"""
	@functools.wraps(func)
	def wrapper(*args: typing.Any, **kwargs: typing.Any) -> AwaitableWrapper[T_co]:
		return AwaitableWrapper(func(*args, **kwargs))
	
	return wrapper



class DualResult(typing.Awaitable[T_co]):
	"""Pending outcome of a store operation, consumable by awaiting it and/or
	through a completion callback
	
	The wrapped operation does not make progress until the result is awaited
	(or handed to a nursery using :meth:`start_soon`) and it only ever runs
	once. Once it has settled, its normalized result is passed to the callback
	(if any) as ``callback(None, result)``, or its error as
	``callback(error, None)``, and then returned to (or raised in) the
	awaiting task.
	
	A result that is dropped without ever being consumed is reported by the
	interpreter's usual "coroutine … was never awaited" :exc:`RuntimeWarning`,
	callback or not.
	"""
	
	__slots__ = ("_operation", "_callback", "_consumed")
	
	_operation: typing.Coroutine[typing.Any, typing.Any, typing.Any]
	_callback: typing.Optional[Callback]
	_consumed: bool
	
	
	def __init__(self, operation: typing.Coroutine[typing.Any, typing.Any, typing.Any],
	             callback: typing.Optional[Callback] = None):
		self._operation = operation
		self._callback = callback
		self._consumed = False
	
	
	async def _settle(self) -> T_co:
		if self._consumed:
			raise RuntimeError("Result of this operation has already been consumed")
		self._consumed = True
		
		try:
			result = normalize.normalize(await self._operation)
		except Exception as error:
			if self._callback is not None:
				self._callback(error, None)
			raise
		
		if self._callback is not None:
			self._callback(None, result)
		return typing.cast(T_co, result)
	
	
	def __await__(self) -> typing.Generator[typing.Any, typing.Any, T_co]:
		return self._settle().__await__()
	
	
	async def _run_in_background(self) -> None:
		try:
			await self._settle()
		except Exception:
			# Already delivered to the callback, nobody else is listening
			if self._callback is None:
				raise
	
	
	def start_soon(self, nursery: trio.Nursery) -> None:
		"""Runs the operation as a new task of *nursery* instead of awaiting it
		
		Errors are reported to the callback only; without a callback they
		propagate into the nursery.
		"""
		nursery.start_soon(self._run_in_background)


def dual_api(func: typing.Callable[..., typing.Coroutine[typing.Any, typing.Any, T_co]]) \
    -> typing.Callable[..., DualResult[T_co]]:
	"""Makes the async function *func* also accept a trailing completion callback
	
	If the last positional argument of a call is callable it is removed from
	the arguments forwarded to *func* and receives ``(error, result)`` once
	the call has settled. Either way the call returns a :class:`DualResult`.
	"""
	@functools.wraps(func)
	def wrapper(*args: typing.Any, **kwargs: typing.Any) -> DualResult[T_co]:
		callback: typing.Optional[Callback] = None
		if args and callable(args[-1]):
			callback = args[-1]
			args = args[:-1]
		return DualResult(func(*args, **kwargs), callback)
	
	return wrapper
