import typing


class Error(Exception):
	"""Base class of all errors raised by pouchy
	
	Attributes
	----------
	status
		HTTP-like status code describing the failure, as reported by
		CouchDB-compatible backends
	"""
	
	status: int = 500
	
	def __init__(self, message: str = None, *, status: typing.Optional[int] = None):
		super().__init__(message if message is not None else (type(self).__doc__ or "").split("\n")[0])
		if status is not None:
			self.status = status
	
	
	def __str__(self) -> str:
		return str(self.args[0]) if self.args else ""



class InvalidArgumentError(Error, ValueError):
	"""Malformed call input"""
	status = 400



class BackendError(Error):
	"""The storage backend failed to carry out the request"""



class NotFoundError(BackendError, KeyError):
	"""Document not found"""
	status = 404



class ConflictError(BackendError):
	"""Document update conflict"""
	status = 409
