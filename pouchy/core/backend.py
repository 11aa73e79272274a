import abc
import copy
import hashlib
import json
import typing
import uuid

import trio

from . import errors
from . import selector as selector_


class util:  # noqa
	from .util import metadata


Document = typing.Dict[str, typing.Any]
Meta = typing.Dict[str, typing.Any]

DESIGN_PREFIX = "_design/"
LOCAL_PREFIX = "_local/"


class Backend(trio.abc.AsyncResource):
	"""A Backend is the document database a :class:`~pouchy.Store` talks to
	
	Its call surface follows the one of CouchDB and PouchDB: documents are
	mappings carrying their identifier and revision as ``_id`` and ``_rev``,
	writes are acknowledged with ``{"ok": True, "id": …, "rev": …}`` and
	failures are reported by raising one of the errors of
	:mod:`pouchy.core.errors` (with ``404`` for missing documents and ``409``
	for revision and index conflicts).
	
	Implementations may be remote servers, embedded databases or plain
	Python objects; none of this is visible to the store.
	"""
	
	__slots__ = ()
	
	
	@abc.abstractmethod
	async def get(self, doc_id: str, **opts: typing.Any) -> Document:
		"""Returns the document named by *doc_id*
		
		Arguments
		---------
		doc_id
			Identifier of the document to retrieve
		rev
			Return this revision rather than the current one
		
		Raises
		------
		NotFoundError
			There is no such document or revision, or the document was deleted
		"""
		pass
	
	
	@abc.abstractmethod
	async def put(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Creates or updates the document with the ``_id`` given in *doc*
		
		Updating requires *doc* to carry the current ``_rev``.
		
		Raises
		------
		ConflictError
			The given revision is not the current one
		"""
		pass
	
	
	@abc.abstractmethod
	async def post(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Creates a new document and assigns it a generated identifier"""
		pass
	
	
	@abc.abstractmethod
	async def remove(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Deletes the document named by the ``_id`` and ``_rev`` of *doc*
		
		Raises
		------
		NotFoundError
			There is no such document
		ConflictError
			The given revision is not the current one
		"""
		pass
	
	
	@abc.abstractmethod
	async def bulk_get(self, docs: typing.List[Document], **opts: typing.Any) -> Meta:
		"""Fetches several documents by ``{"id": …, "rev": …}`` filters at once
		
		Returns ``{"results": [{"id": …, "docs": [{"ok": doc} | {"error": …}]}]}``
		with one result group per filter, in request order. Missing documents
		are reported within their group rather than by raising.
		"""
		pass
	
	
	@abc.abstractmethod
	async def find(self, query: typing.Mapping[str, typing.Any]) -> Meta:
		"""Runs the Mango *query* and returns ``{"docs": […]}``"""
		pass
	
	
	@abc.abstractmethod
	async def all_docs(self, *, include_docs: bool = False, **opts: typing.Any) -> Meta:
		"""Enumerates every live document ordered by identifier
		
		Returns ``{"total_rows": …, "offset": …, "rows": […]}`` where each row
		is ``{"id": …, "key": …, "value": {"rev": …}}``, plus the complete
		document as ``"doc"`` if *include_docs* is set.
		"""
		pass
	
	
	@abc.abstractmethod
	async def create_index(self, index: typing.Mapping[str, typing.Any], **opts: typing.Any) -> Meta:
		"""Creates a secondary index over ``index["fields"]``
		
		Raises
		------
		ConflictError
			An index over the same fields already exists
		"""
		pass
	
	
	@abc.abstractmethod
	async def destroy(self) -> Meta:
		"""Irreversibly deletes the database and all of its documents"""
		pass
	
	
	async def info(self) -> util.metadata.DatabaseInfo:
		"""Returns basic facts about the database
		
		Unless overwritten this only knows the backend's class name.
		"""
		return util.metadata.DatabaseInfo(db_name=type(self).__name__)
	
	
	async def aclose(self) -> None:
		"""Releases the connection to the database, keeping its contents"""
		pass



class NullBackend(Backend):
	"""Stores nothing, but conforms to the API. Useful to test with."""
	
	__slots__ = ()
	
	async def get(self, doc_id: str, **opts: typing.Any) -> Document:
		"""Unconditionally raise `NotFoundError`"""
		raise errors.NotFoundError("missing")
	
	async def put(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Pretend to have stored the first revision of *doc*"""
		return {"ok": True, "id": doc["_id"], "rev": "1-0"}
	
	async def post(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Pretend to have stored the first revision of *doc*"""
		return {"ok": True, "id": uuid.uuid4().hex, "rev": "1-0"}
	
	async def remove(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Unconditionally raise `NotFoundError`"""
		raise errors.NotFoundError("missing")
	
	async def bulk_get(self, docs: typing.List[Document], **opts: typing.Any) -> Meta:
		"""Report every requested document as missing"""
		return {"results": [
			{"id": doc.get("id"), "docs": [{"error": {"id": doc.get("id"), "error": "not_found"}}]}
			for doc in docs
		]}
	
	async def find(self, query: typing.Mapping[str, typing.Any]) -> Meta:
		"""This won't ever match anything"""
		return {"docs": []}
	
	async def all_docs(self, *, include_docs: bool = False, **opts: typing.Any) -> Meta:
		"""There is never anything to enumerate"""
		return {"total_rows": 0, "offset": 0, "rows": []}
	
	async def create_index(self, index: typing.Mapping[str, typing.Any], **opts: typing.Any) -> Meta:
		"""Pretend to have created an index"""
		return {"result": "created"}
	
	async def destroy(self) -> Meta:
		return {"ok": True}



class _Record:
	"""Revision history of one document of :class:`MemoryBackend`"""
	
	__slots__ = ("revisions", "winner", "deleted")
	
	revisions: typing.Dict[str, Document]
	winner: str
	deleted: bool
	
	def __init__(self) -> None:
		self.revisions = {}
		self.winner = ""
		self.deleted = False



class MemoryBackend(Backend):
	"""In-process backend behaving like a (single node, compaction-less) PouchDB
	
	Every revision of every document is retained, so older revisions stay
	retrievable through ``get(doc_id, rev=…)``. Deleted documents are kept as
	tombstones. Secondary indices are recorded as design documents, the way
	CouchDB does it, but not used for anything.
	
	This isn't thread-safe, but that's OK as we don't actually guarantee
	that, rather we are only safe with regards to trio's task scheduling.
	"""
	
	__slots__ = ("name", "_docs", "_update_seq", "_state")
	
	name: str
	_docs: typing.Dict[str, _Record]
	_update_seq: int
	_state: typing.Optional[str]
	
	
	def __init__(self, name: str = "memory"):
		self.name = name
		self._docs = {}
		self._update_seq = 0
		self._state = None
	
	
	def _check_open(self) -> None:
		if self._state is not None:
			raise errors.BackendError(f"database is {self._state}")
	
	
	@staticmethod
	def _check_id(doc_id: typing.Any) -> str:
		if doc_id is None or doc_id == "":
			raise errors.BackendError("_id is required for puts", status=412)
		if not isinstance(doc_id, str):
			raise errors.BackendError("_id field must contain a string", status=400)
		if doc_id.startswith("_") and not doc_id.startswith((DESIGN_PREFIX, LOCAL_PREFIX)):
			raise errors.BackendError(
				"Only reserved document ids may start with underscore.", status=400
			)
		return doc_id
	
	
	@staticmethod
	def _next_revision(previous: typing.Optional[str]) -> str:
		generation = int(previous.split("-", 1)[0]) + 1 if previous else 1
		return f"{generation}-{uuid.uuid4().hex}"
	
	
	@staticmethod
	def _body(doc: typing.Mapping[str, typing.Any]) -> Document:
		return copy.deepcopy({
			name: value for name, value in doc.items() if name not in ("_id", "_rev")
		})
	
	
	def _write(self, doc_id: str, rev: typing.Optional[str], body: Document) -> Meta:
		"""Stores *body* as the successor of revision *rev* of *doc_id*"""
		record = self._docs.get(doc_id)
		if record is None:
			if rev:
				raise errors.ConflictError()
			record = _Record()
		elif record.deleted:
			# Recreating a deleted document needs no revision
			if rev and rev != record.winner:
				raise errors.ConflictError()
		elif rev != record.winner:
			raise errors.ConflictError()
		
		new_rev = self._next_revision(record.winner or None)
		record.revisions[new_rev] = body
		record.winner = new_rev
		record.deleted = bool(body.get("_deleted", False))
		self._docs[doc_id] = record
		self._update_seq += 1
		return {"ok": True, "id": doc_id, "rev": new_rev}
	
	
	def _live_ids(self, *, descending: bool = False) -> typing.List[str]:
		# Local documents never show up in listings
		return sorted(
			(doc_id for doc_id, record in self._docs.items()
			 if not record.deleted and not doc_id.startswith(LOCAL_PREFIX)),
			reverse=descending
		)
	
	
	def _current(self, doc_id: str) -> Document:
		record = self._docs[doc_id]
		return {"_id": doc_id, "_rev": record.winner,
		        **copy.deepcopy(record.revisions[record.winner])}
	
	
	async def get(self, doc_id: str, *, rev: typing.Optional[str] = None,
	              **opts: typing.Any) -> Document:
		"""Returns the current revision of the document named by *doc_id*, or
		revision *rev* of it
		
		Arguments
		---------
		doc_id
			Identifier of the document to retrieve
		rev
			Revision to retrieve instead of the current one
		"""
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		record = self._docs.get(doc_id)
		if record is None:
			raise errors.NotFoundError("missing")
		if rev is None:
			if record.deleted:
				raise errors.NotFoundError("deleted")
			rev = record.winner
		if rev not in record.revisions:
			raise errors.NotFoundError("missing")
		return {"_id": doc_id, "_rev": rev, **copy.deepcopy(record.revisions[rev])}
	
	
	async def put(self, doc: Document, **opts: typing.Any) -> Meta:
		self._check_open()
		await trio.lowlevel.checkpoint()
		return self._write(self._check_id(doc.get("_id")), doc.get("_rev"), self._body(doc))
	
	
	async def post(self, doc: Document, **opts: typing.Any) -> Meta:
		"""Stores *doc* under a newly generated identifier
		
		Any ``_id`` or ``_rev`` given in *doc* is ignored.
		"""
		self._check_open()
		await trio.lowlevel.checkpoint()
		return self._write(uuid.uuid4().hex.upper(), None, self._body(doc))
	
	
	async def remove(self, doc: Document, **opts: typing.Any) -> Meta:
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		doc_id = doc.get("_id")
		record = self._docs.get(doc_id)  # type: ignore[arg-type]
		if record is None or record.deleted:
			raise errors.NotFoundError("missing" if record is None else "deleted")
		if not doc.get("_rev"):
			raise errors.ConflictError()
		return self._write(typing.cast(str, doc_id), doc["_rev"], {"_deleted": True})
	
	
	async def bulk_get(self, docs: typing.List[Document], **opts: typing.Any) -> Meta:
		self._check_open()
		
		results = []
		for entry in docs:
			doc_id = entry.get("id")
			try:
				found: Document = {"ok": await self.get(doc_id, rev=entry.get("rev"))}  # type: ignore[arg-type]
			except errors.NotFoundError as error:
				found = {"error": {
					"id": doc_id, "rev": entry.get("rev"), "error": "not_found", "reason": str(error)
				}}
			results.append({"id": doc_id, "docs": [found]})
		return {"results": results}
	
	
	async def find(self, query: typing.Mapping[str, typing.Any]) -> Meta:
		"""Evaluates the Mango *query* by scanning every live document
		
		Understands the ``selector``, ``fields``, ``sort``, ``limit`` and
		``skip`` members of *query*. Design documents never match.
		"""
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		selector = query.get("selector")
		if not isinstance(selector, typing.Mapping):
			raise errors.InvalidArgumentError("you must provide a selector when you find()")
		
		docs = [
			self._current(doc_id) for doc_id in self._live_ids()
			if not doc_id.startswith(DESIGN_PREFIX)
		]
		docs = [doc for doc in docs if selector_.matches(selector, doc)]
		if query.get("sort"):
			selector_.sort_documents(docs, query["sort"])
		
		skip = query.get("skip", 0)
		limit = query.get("limit")
		docs = docs[skip:] if limit is None else docs[skip:skip + limit]
		
		if query.get("fields"):
			docs = [selector_.project(doc, query["fields"]) for doc in docs]
		return {"docs": docs}
	
	
	async def all_docs(self, *, include_docs: bool = False, limit: typing.Optional[int] = None,
	                   skip: int = 0, startkey: typing.Optional[str] = None,
	                   endkey: typing.Optional[str] = None, descending: bool = False,
	                   **opts: typing.Any) -> Meta:
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		ids = self._live_ids(descending=descending)
		total_rows = len(ids)
		if startkey is not None:
			ids = [i for i in ids if (i <= startkey if descending else i >= startkey)]
		if endkey is not None:
			ids = [i for i in ids if (i >= endkey if descending else i <= endkey)]
		ids = ids[skip:] if limit is None else ids[skip:skip + limit]
		
		rows = []
		for doc_id in ids:
			row: Document = {"id": doc_id, "key": doc_id, "value": {"rev": self._docs[doc_id].winner}}
			if include_docs:
				row["doc"] = self._current(doc_id)
			rows.append(row)
		return {"total_rows": total_rows, "offset": skip, "rows": rows}
	
	
	async def create_index(self, index: typing.Mapping[str, typing.Any], *,
	                       name: typing.Optional[str] = None, ddoc: typing.Optional[str] = None,
	                       **opts: typing.Any) -> Meta:
		"""Records an index over ``index["fields"]`` as a design document
		
		Arguments
		---------
		index
			Mapping with the list of indexed field names as ``"fields"``
		name
			Name of the index, derived from the field list by default
		ddoc
			Name of the design document to store the index in, defaults to
			the index name
		"""
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		fields = index.get("fields")
		if not isinstance(fields, list) or not fields:
			raise errors.InvalidArgumentError("index.fields must be a non-empty list")
		
		digest = hashlib.md5(json.dumps(fields).encode()).hexdigest()
		name = name or f"idx-{digest}"
		doc_id = DESIGN_PREFIX + (ddoc or name)
		
		record = self._docs.get(doc_id)
		design: Document = {"language": "query", "views": {}}
		rev = None
		if record is not None and not record.deleted:
			design = copy.deepcopy(record.revisions[record.winner])
			rev = record.winner
			if name in design.get("views", {}):
				raise errors.ConflictError("Index already exists")
		
		design.setdefault("views", {})[name] = {
			"map": {"fields": {field: "asc" for field in fields}},
			"options": {"def": {"fields": list(fields)}},
		}
		self._write(doc_id, rev, design)
		return {"result": "created", "id": doc_id, "name": name}
	
	
	async def destroy(self) -> Meta:
		self._check_open()
		await trio.lowlevel.checkpoint()
		
		self._docs.clear()
		self._state = "destroyed"
		return {"ok": True}
	
	
	async def info(self) -> util.metadata.DatabaseInfo:
		self._check_open()
		return util.metadata.DatabaseInfo(
			db_name=self.name,
			doc_count=len(self._live_ids()),
			update_seq=self._update_seq,
		)
	
	
	async def aclose(self) -> None:
		"""Disconnects this backend; its documents are forgotten"""
		if self._state is None:
			self._docs.clear()
			self._state = "closed"
		await super().aclose()
	
	
	def __len__(self) -> int:
		return len(self._live_ids())



class Adapter(Backend):
	"""Represents a non-concrete backend that adds functionality between the
	   store and a lower-level backend.
	
	Adapters do not actually store data themselves; instead, they delegate
	storage to an underlying child backend. The default implementation just
	passes all calls to the child.
	"""
	
	__slots__ = ("child_backend",)
	
	child_backend: Backend
	
	
	def __init__(self, backend: Backend):
		"""Initializes this Adapter with child *backend*"""
		self.child_backend = backend
	
	# default implementation just passes all calls to child
	async def get(self, doc_id: str, **opts: typing.Any) -> Document:
		return await self.child_backend.get(doc_id, **opts)
	
	async def put(self, doc: Document, **opts: typing.Any) -> Meta:
		return await self.child_backend.put(doc, **opts)
	
	async def post(self, doc: Document, **opts: typing.Any) -> Meta:
		return await self.child_backend.post(doc, **opts)
	
	async def remove(self, doc: Document, **opts: typing.Any) -> Meta:
		return await self.child_backend.remove(doc, **opts)
	
	async def bulk_get(self, docs: typing.List[Document], **opts: typing.Any) -> Meta:
		return await self.child_backend.bulk_get(docs, **opts)
	
	async def find(self, query: typing.Mapping[str, typing.Any]) -> Meta:
		return await self.child_backend.find(query)
	
	async def all_docs(self, *, include_docs: bool = False, **opts: typing.Any) -> Meta:
		return await self.child_backend.all_docs(include_docs=include_docs, **opts)
	
	async def create_index(self, index: typing.Mapping[str, typing.Any], **opts: typing.Any) -> Meta:
		return await self.child_backend.create_index(index, **opts)
	
	async def destroy(self) -> Meta:
		return await self.child_backend.destroy()
	
	async def info(self) -> util.metadata.DatabaseInfo:
		return await self.child_backend.info()
	
	
	async def aclose(self) -> None:
		"""Closes any resources held by the child backend"""
		try:
			await self.child_backend.aclose()
		finally:
			await super().aclose()
