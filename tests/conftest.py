import typing

import pytest

import pouchy


class Replication(pouchy.ReplicationSession):
	"""Replication stand-in that completes right when it gets cancelled,
	the way PouchDB's replication does"""
	
	cancelled: int
	
	def __init__(self, *, live: bool = True):
		super().__init__(live=live)
		self.cancelled = 0
	
	def cancel(self) -> None:
		self.cancelled += 1
		self.emit("complete", {"status": "cancelled"})


class DeferredReplication(Replication):
	"""Replication stand-in that only completes once `finish` is called"""
	
	def cancel(self) -> None:
		self.cancelled += 1
	
	def finish(self) -> None:
		self.emit("complete", {"status": "cancelled"})


class SpyBackend(pouchy.abc.Adapter):
	"""Records the name and arguments of each call before forwarding it"""
	
	calls: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...], typing.Dict[str, typing.Any]]]
	
	def __init__(self, backend: pouchy.abc.Backend = None):
		super().__init__(backend if backend is not None else pouchy.MemoryBackend())
		self.calls = []
	
	def names(self) -> typing.List[str]:
		return [name for name, _, _ in self.calls]
	
	async def get(self, *args, **kwargs):
		self.calls.append(("get", args, kwargs))
		return await super().get(*args, **kwargs)
	
	async def put(self, *args, **kwargs):
		self.calls.append(("put", args, kwargs))
		return await super().put(*args, **kwargs)
	
	async def post(self, *args, **kwargs):
		self.calls.append(("post", args, kwargs))
		return await super().post(*args, **kwargs)
	
	async def remove(self, *args, **kwargs):
		self.calls.append(("remove", args, kwargs))
		return await super().remove(*args, **kwargs)
	
	async def bulk_get(self, *args, **kwargs):
		self.calls.append(("bulk_get", args, kwargs))
		return await super().bulk_get(*args, **kwargs)
	
	async def all_docs(self, *args, **kwargs):
		self.calls.append(("all_docs", args, kwargs))
		return await super().all_docs(*args, **kwargs)
	
	async def create_index(self, *args, **kwargs):
		self.calls.append(("create_index", args, kwargs))
		return await super().create_index(*args, **kwargs)
	
	async def destroy(self, *args, **kwargs):
		self.calls.append(("destroy", args, kwargs))
		return await super().destroy(*args, **kwargs)


@pytest.fixture(name="backend")
def return_backend() -> pouchy.MemoryBackend:
	return pouchy.MemoryBackend("test")


@pytest.fixture(name="spy")
def return_spy(backend: pouchy.MemoryBackend) -> SpyBackend:
	return SpyBackend(backend)


@pytest.fixture(name="store")
def return_store(spy: SpyBackend) -> pouchy.Store:
	return pouchy.Store(spy)


@pytest.fixture(name="Replication")
def return_replication() -> typing.Type[Replication]:
	return Replication


@pytest.fixture(name="DeferredReplication")
def return_deferred_replication() -> typing.Type[DeferredReplication]:
	return DeferredReplication
