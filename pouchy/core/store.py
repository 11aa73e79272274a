import logging
import typing

import trio

from . import backend as backend_
from . import errors
from . import normalize
from . import replication as replication_


class util:  # noqa
	from .util import decorator
	from .util import metadata


Document = normalize.Document

LOGGER: logging.Logger = logging.getLogger(__name__)


class Store(trio.abc.AsyncResource):
	"""Simple, opinionated access to the documents of a CouchDB-like database
	
	A Store wraps a :class:`~pouchy.abc.Backend` and hides its inconsistent
	result shapes: every document handed out carries its identifier and
	revision as ``id`` and ``revision``, listings and queries return plain
	lists of documents, and index creation may be repeated freely.
	
	Every public operation may be awaited directly or be given a trailing
	completion callback receiving ``(error, result)``; see
	:func:`pouchy.util.dual_api`::
	
		doc = await store.save({"peanut": "butter"})
		
		def on_saved(error, doc):
			...
		await store.save({"peanut": "butter"}, on_saved)
	
	Attributes
	----------
	backend
		The database connection; owned by this store
	replication
		Replication session running against the database, if any; owned by
		this store and cancelled by :meth:`destroy`
	logger
		Where to report lifecycle events
	"""
	
	__slots__ = ("backend", "replication", "logger")
	
	DESIGN_DOC_PREFIX: str = backend_.DESIGN_PREFIX
	
	backend: backend_.Backend
	replication: typing.Optional[replication_.ReplicationSession]
	logger: logging.Logger
	
	
	def __init__(self, backend: backend_.Backend, *,
	             replication: typing.Optional[replication_.ReplicationSession] = None,
	             logger: logging.Logger = LOGGER):
		self.backend = backend
		self.replication = replication
		self.logger = logger
	
	
	@classmethod
	@util.decorator.awaitable_to_context_manager
	async def create(cls, *args: typing.Any, **kwargs: typing.Any) -> "Store":
		return cls(*args, **kwargs)
	
	
	def _is_design_doc(self, doc: Document) -> bool:
		doc_id = doc.get(normalize.ID_FIELD)
		return isinstance(doc_id, str) and doc_id.startswith(self.DESIGN_DOC_PREFIX)
	
	
	@staticmethod
	def _apply_meta(doc: Document, meta: typing.Mapping[str, typing.Any]) -> Document:
		doc[normalize.ID_FIELD] = meta["id"]
		doc[normalize.REVISION_FIELD] = meta["rev"]
		return doc
	
	
	####################
	# Single documents #
	####################
	
	
	@util.decorator.dual_api
	async def get(self, doc_id: str, **opts: typing.Any) -> Document:
		"""Returns the document named by *doc_id*
		
		Arguments
		---------
		doc_id
			Identifier of the document to retrieve
		opts
			Passed on to the backend, e.g. ``rev`` to retrieve an older revision
		
		Raises
		------
		NotFoundError
			There is no such document (or revision)
		"""
		return await self.backend.get(doc_id, **opts)
	
	
	@util.decorator.dual_api
	async def save(self, doc: Document, **opts: typing.Any) -> Document:
		"""Adds or updates a document
		
		If *doc* has an ``id`` key at all (even ``0`` or ``""``) it is written
		under that identifier, otherwise the backend assigns a new identifier.
		
		The given *doc* itself receives the resulting ``id`` and ``revision``
		and is returned::
		
			doc = await store.save({"beep": "bop"})
			# {"beep": "bop", "id": "8F5A…", "revision": "1-97f2…"}
		
		Raises
		------
		ConflictError
			*doc* exists with a revision other than the one in *doc*
		"""
		if normalize.ID_FIELD in doc:
			meta = await self.backend.put(normalize.to_backend(doc), **opts)
		else:
			meta = await self.backend.post(normalize.to_backend(doc), **opts)
		return self._apply_meta(doc, meta)
	
	
	add = save
	
	
	@util.decorator.dual_api
	async def update(self, doc: Document, **opts: typing.Any) -> Document:
		"""Writes *doc* under its ``id`` and returns it with its new ``revision``
		
		Like :meth:`save`, *doc* is updated in place.
		"""
		meta = await self.backend.put(normalize.to_backend(doc), **opts)
		return self._apply_meta(doc, meta)
	
	
	@util.decorator.dual_api
	async def delete(self, doc: Document, **opts: typing.Any) -> Document:
		"""Deletes *doc*, which must carry its current ``revision``
		
		Returns the backend's acknowledgement ``{"ok": True, "id": …, "revision": …}``.
		"""
		return await self.backend.remove(normalize.to_backend(doc), **opts)
	
	
	#####################
	# Sets of documents #
	#####################
	
	
	@util.decorator.dual_api
	async def find(self, query: typing.Mapping[str, typing.Any]) -> typing.List[Document]:
		"""Returns the documents matching the Mango *query*
		
		Example::
		
			await store.find({"selector": {"name": {"$gt": "m"}}, "sort": ["name"]})
		"""
		return (await self.backend.find(query))["docs"]  # type: ignore[no-any-return]
	
	
	@util.decorator.dual_api
	async def all(self, *, include_docs: bool = True, include_design_docs: bool = False,
	              **opts: typing.Any) -> typing.List[Document]:
		"""Returns every document, in the backend's enumeration order
		
		Arguments
		---------
		include_docs
			Return complete documents; otherwise only ``id`` and ``revision``
			of each document are returned
		include_design_docs
			Return design documents (index definitions and the like) *instead*
			of regular documents
		opts
			Passed on to the backend's enumeration (``limit``, ``skip``,
			``startkey``, ``endkey``, ``descending``)
		"""
		result = await self.backend.all_docs(include_docs=include_docs, **opts)
		
		docs = []
		for row in result["rows"]:
			doc = normalize.row_to_document(row, include_docs)
			if self._is_design_doc(doc) == include_design_docs:
				docs.append(doc)
		return docs
	
	
	@util.decorator.dual_api
	async def bulk_get(self, docs: typing.Union[typing.List[typing.Mapping[str, typing.Any]],
	                                            typing.Mapping[str, typing.Any]]) \
	      -> typing.List[Document]:
		"""Fetches a batch of documents that are all expected to exist
		
		Example::
		
			await store.bulk_get([{"id": "a", "revision": "1-…"}, {"id": "b"}])
			await store.bulk_get({"docs": [{"id": "a"}, {"id": "b"}]})
		
		Arguments
		---------
		docs
			List of ``{id, revision}`` mappings, or a mapping holding such a list
			as ``"docs"``; none of them is modified
		
		Raises
		------
		InvalidArgumentError
			*docs* is missing or does not amount to a list of mappings
		NotFoundError
			Any one of the requested documents does not exist; nothing else
			is returned then
		"""
		if docs is None:
			raise errors.InvalidArgumentError("missing bulk_get docs")
		if isinstance(docs, typing.Mapping):
			docs = docs.get("docs")  # type: ignore[assignment]
		if not isinstance(docs, list) \
		   or not all(isinstance(entry, typing.Mapping) for entry in docs):
			raise errors.InvalidArgumentError("bulk_get requires a list of document filters")
		
		filters = [normalize.to_filter(entry) for entry in docs]
		if not filters:
			return []
		
		result = await self.backend.bulk_get(filters)
		
		found = []
		for group in result["results"]:
			doc = next((entry["ok"] for entry in group.get("docs", []) if "ok" in entry), None)
			if doc is None:
				raise errors.NotFoundError(f"document {group.get('id')!r} not found")
			found.append(doc)
		return found
	
	
	@util.decorator.dual_api
	async def delete_all(self) -> typing.List[Document]:
		"""Deletes every (non-design) document
		
		All deletions are started at once and all of them are carried out
		even if some fail. If exactly one fails its error is raised; if
		several fail they are raised together as an :class:`ExceptionGroup`.
		"""
		docs = await self.all()
		acks: typing.List[typing.Optional[Document]] = [None] * len(docs)
		failures: typing.List[Exception] = []
		
		async def delete_one(index: int, doc: Document) -> None:
			try:
				acks[index] = await self.delete(doc)
			except Exception as error:
				failures.append(error)
		
		async with trio.open_nursery() as nursery:
			for index, doc in enumerate(docs):
				nursery.start_soon(delete_one, index, doc)
		
		if len(failures) == 1:
			raise failures[0]
		if failures:
			raise ExceptionGroup(f"{len(failures)} of {len(docs)} deletions failed", failures)
		return typing.cast(typing.List[Document], acks)
	
	
	clear = delete_all
	
	
	###########
	# Indices #
	###########
	
	
	@util.decorator.dual_api
	async def create_indicies(self, fields: typing.Union[str, typing.Iterable[str]]) \
	      -> typing.Optional[Document]:
		"""Creates one index over one or more fields, unless it already exists
		
		Example::
		
			await store.create_indicies("name")
			await store.create_indicies(["name", "age"])
		
		Returns the backend's description of the new index, or `None` if an
		index over *fields* already existed.
		"""
		names = [fields] if isinstance(fields, str) else list(fields)
		unique = list(dict.fromkeys(names))
		try:
			return await self.backend.create_index({"fields": unique})
		except errors.ConflictError:
			self.logger.debug("%s: index over %s already exists", self, unique)
			return None
	
	
	create_index = create_indicies
	
	
	#############
	# Lifecycle #
	#############
	
	
	@util.decorator.dual_api
	async def info(self) -> util.metadata.DatabaseInfo:
		"""Returns basic facts about the database"""
		return await self.backend.info()
	
	
	@util.decorator.dual_api
	async def destroy(self) -> Document:
		"""Stops replication, then irreversibly deletes the database
		
		A live replication session is cancelled first and the database is
		only deleted once the session has reported ``"complete"``, so that no
		replication work is still in flight against it.
		
		If cancelling the session fails, its error is raised and both the
		session and the database are left as they were.
		"""
		session = self.replication
		if session is not None:
			if session.live:
				# Cancelling may emit "complete" synchronously, so listen first
				completed = trio.Event()
				
				def on_complete(*args: typing.Any) -> None:
					completed.set()
				
				session.once("complete", on_complete)
				try:
					session.cancel()
				except Exception:
					session.off("complete", on_complete)
					raise
				self.logger.info("%s: waiting for live replication to complete", self)
				await completed.wait()
			else:
				session.cancel()
			self.replication = None
		
		self.logger.info("%s: destroying database", self)
		return await self.backend.destroy()
	
	
	@util.decorator.dual_api
	async def delete_db(self) -> Document:
		"""Irreversibly deletes the database right away
		
		Unlike :meth:`destroy` this does not wait for replication to stop.
		"""
		return await self.backend.destroy()
	
	
	async def aclose(self) -> None:
		"""Closes the connection to the database, keeping its contents"""
		await self.backend.aclose()
