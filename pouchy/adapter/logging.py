import logging
import typing

import pouchy

__all__ = [
	"Adapter",
]



ROOT_LOGGER: logging.Logger = logging.getLogger()



class Adapter(pouchy.abc.Adapter):
	"""Wraps a backend with a logging shim"""
	__slots__ = ("logger",)
	
	logger: logging.Logger
	
	
	def __init__(self, *args: typing.Any, logger: logging.Logger = ROOT_LOGGER,
	             **kwargs: typing.Any):
		self.logger = logger
		super().__init__(*args, **kwargs)
	
	
	async def get(self, doc_id: str, **opts: typing.Any) -> pouchy.abc.Document:
		"""Returns the document named by *doc_id*
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: get %s %s', self, doc_id, opts)
		value = await super().get(doc_id, **opts)
		self.logger.debug('%s: %s', self, value)
		return value
	
	
	async def put(self, doc: pouchy.abc.Document, **opts: typing.Any) -> pouchy.abc.Meta:
		"""Stores *doc* under its own identifier
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: put %s (rev=%s)', self, doc.get("_id"), doc.get("_rev"))
		self.logger.debug('%s: %s', self, doc)
		meta = await super().put(doc, **opts)
		self.logger.debug('%s: %s', self, meta)
		return meta
	
	
	async def post(self, doc: pouchy.abc.Document, **opts: typing.Any) -> pouchy.abc.Meta:
		"""Stores *doc* under a new identifier
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: post', self)
		self.logger.debug('%s: %s', self, doc)
		meta = await super().post(doc, **opts)
		self.logger.debug('%s: %s', self, meta)
		return meta
	
	
	async def remove(self, doc: pouchy.abc.Document, **opts: typing.Any) -> pouchy.abc.Meta:
		"""Deletes *doc*
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: remove %s (rev=%s)', self, doc.get("_id"), doc.get("_rev"))
		return await super().remove(doc, **opts)
	
	
	async def bulk_get(self, docs: typing.List[pouchy.abc.Document],
	                   **opts: typing.Any) -> pouchy.abc.Meta:
		"""Fetches several documents at once
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: bulk_get %s', self, [doc.get("id") for doc in docs])
		value = await super().bulk_get(docs, **opts)
		self.logger.debug('%s: %s', self, value)
		return value
	
	
	async def find(self, query: typing.Mapping[str, typing.Any]) -> pouchy.abc.Meta:
		"""Returns the documents matching *query*
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: find %s', self, query)
		return await super().find(query)
	
	
	async def all_docs(self, *, include_docs: bool = False, **opts: typing.Any) -> pouchy.abc.Meta:
		"""Enumerates all documents
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: all_docs (include_docs=%s) %s', self, include_docs, opts)
		return await super().all_docs(include_docs=include_docs, **opts)
	
	
	async def create_index(self, index: typing.Mapping[str, typing.Any],
	                       **opts: typing.Any) -> pouchy.abc.Meta:
		"""Creates a secondary index
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: create_index %s', self, index)
		return await super().create_index(index, **opts)
	
	
	async def destroy(self) -> pouchy.abc.Meta:
		"""Deletes the database
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: destroy', self)
		return await super().destroy()
	
	
	async def info(self) -> pouchy.util.DatabaseInfo:
		"""Returns basic facts about the database
		
		LoggingBackend logs the access.
		"""
		self.logger.info('%s: info', self)
		return await super().info()
