import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class DatabaseInfo:
	"""
	Attributes
	----------
	db_name
		Name of the database as known to its backend
	doc_count
		Number of live (non-deleted) documents, design documents included, or
		`None` if unknown
	update_seq
		Sequence number of the latest write, or `None` if unknown
	"""
	
	db_name: str
	# Design documents are counted too
	doc_count: typing.Optional[int] = None
	update_seq: typing.Optional[int] = None
