"""Translation between canonical documents and backend-native shapes

Callers only ever see documents carrying ``id`` and ``revision``. Backends
(CouchDB, PouchDB and anything behaving like them) store documents with
``_id``/``_rev`` and answer writes, enumeration and batched fetches with
``id``/``rev`` records. This module is the only place that knows both.
"""
import typing

Document = typing.Dict[str, typing.Any]

ID_FIELD = "id"
REVISION_FIELD = "revision"

_BACKEND_ID = "_id"
_BACKEND_REV = "_rev"
_META_REV = "rev"

# Write acknowledgements are told apart from documents by this member
_META_MARKER = "ok"

# Transient members of backend write acknowledgements
_TRANSIENT_FIELDS = ("status",)


def _is_document(value: typing.Mapping[str, typing.Any]) -> bool:
	return _BACKEND_ID in value or _BACKEND_REV in value


def _is_meta(value: typing.Mapping[str, typing.Any]) -> bool:
	return _META_MARKER in value and _META_REV in value and REVISION_FIELD not in value


def normalize(value: typing.Any) -> typing.Any:
	"""Reshapes a backend response into canonical form
	
	Lists are normalized element by element. Values that are already
	canonical (or that are not documents at all) are returned unchanged and
	as the very same object.
	"""
	if isinstance(value, list):
		return [normalize(item) for item in value]
	if not isinstance(value, typing.Mapping):
		return value
	
	if _is_document(value):
		result: Document = {}
		for name, item in value.items():
			if name == _BACKEND_ID:
				result[ID_FIELD] = item
			elif name == _BACKEND_REV:
				result[REVISION_FIELD] = item
			else:
				result[name] = item
		return result
	
	if _is_meta(value):
		result = {}
		for name, item in value.items():
			if name in _TRANSIENT_FIELDS:
				continue
			result[REVISION_FIELD if name == _META_REV else name] = item
		return result
	
	return value


def to_backend(doc: typing.Mapping[str, typing.Any]) -> Document:
	"""Returns a copy of canonical document *doc* using the backend field names"""
	result: Document = {}
	for name, item in doc.items():
		if name == ID_FIELD:
			result[_BACKEND_ID] = item
		elif name == REVISION_FIELD:
			result[_BACKEND_REV] = item
		else:
			result[name] = item
	return result


def to_filter(entry: typing.Mapping[str, typing.Any]) -> Document:
	"""Reshapes an ``{id, revision}`` pair into a batched-fetch filter ``{id, rev}``
	
	Both canonical and backend-native spellings are accepted on input.
	"""
	result = {name: item for name, item in entry.items()
	          if name not in (ID_FIELD, REVISION_FIELD, _BACKEND_ID, _BACKEND_REV, _META_REV)}
	for name in (_BACKEND_ID, ID_FIELD):
		if name in entry:
			result[ID_FIELD] = entry[name]
			break
	for name in (_BACKEND_REV, REVISION_FIELD, _META_REV):
		if entry.get(name):
			result[_META_REV] = entry[name]
			break
	return result


def row_to_document(row: typing.Mapping[str, typing.Any], include_docs: bool) -> Document:
	"""Turns one enumeration row into a canonical document
	
	Rows enumerated with *include_docs* carry the full document body under
	``doc``; all other rows are stubs from which only the identifier and the
	current revision survive.
	"""
	if include_docs:
		return typing.cast(Document, normalize(row["doc"]))
	return {ID_FIELD: row[ID_FIELD], REVISION_FIELD: row["value"][_META_REV]}
