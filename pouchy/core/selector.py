"""Mango selector evaluation for in-process backends

Only the commonly used subset of CouchDB's query language is understood.
Values of different types are ordered the way CouchDB collates them, so
range operators never fail on mixed data.
"""
import functools
import json
import re
import typing

from . import errors

Selector = typing.Mapping[str, typing.Any]


class _Missing:
	__slots__ = ()
	
	def __repr__(self) -> str:
		return "<missing>"


MISSING = _Missing()


def resolve(doc: typing.Any, path: str) -> typing.Any:
	"""Returns the value at dotted *path* inside *doc* or `MISSING`"""
	for part in path.split("."):
		if not isinstance(doc, typing.Mapping) or part not in doc:
			return MISSING
		doc = doc[part]
	return doc


def collation_key(value: typing.Any) -> typing.Tuple[typing.Any, ...]:
	if value is None:
		return (0,)
	if isinstance(value, bool):
		return (1, value)
	if isinstance(value, (int, float)):
		return (2, value)
	if isinstance(value, str):
		return (3, value)
	if isinstance(value, (list, tuple)):
		return (4, tuple(collation_key(item) for item in value))
	return (5, json.dumps(value, sort_keys=True, default=str))


def _compare(value: typing.Any, argument: typing.Any) -> typing.Optional[int]:
	if value is MISSING:
		return None
	left, right = collation_key(value), collation_key(argument)
	return (left > right) - (left < right)


def _op_eq(value: typing.Any, argument: typing.Any) -> bool:
	return value is not MISSING and value == argument


def _op_ne(value: typing.Any, argument: typing.Any) -> bool:
	return value is not MISSING and value != argument


def _op_gt(value: typing.Any, argument: typing.Any) -> bool:
	result = _compare(value, argument)
	return result is not None and result > 0


def _op_gte(value: typing.Any, argument: typing.Any) -> bool:
	result = _compare(value, argument)
	return result is not None and result >= 0


def _op_lt(value: typing.Any, argument: typing.Any) -> bool:
	result = _compare(value, argument)
	return result is not None and result < 0


def _op_lte(value: typing.Any, argument: typing.Any) -> bool:
	result = _compare(value, argument)
	return result is not None and result <= 0


def _op_in(value: typing.Any, argument: typing.Any) -> bool:
	return value is not MISSING and value in argument


def _op_nin(value: typing.Any, argument: typing.Any) -> bool:
	return value is not MISSING and value not in argument


def _op_exists(value: typing.Any, argument: typing.Any) -> bool:
	return (value is not MISSING) == bool(argument)


def _op_regex(value: typing.Any, argument: typing.Any) -> bool:
	return isinstance(value, str) and re.search(argument, value) is not None


def _op_not(value: typing.Any, argument: typing.Any) -> bool:
	return not _test(value, argument)


_OPERATORS: typing.Dict[str, typing.Callable[[typing.Any, typing.Any], bool]] = {
	"$eq":     _op_eq,
	"$ne":     _op_ne,
	"$gt":     _op_gt,
	"$gte":    _op_gte,
	"$lt":     _op_lt,
	"$lte":    _op_lte,
	"$in":     _op_in,
	"$nin":    _op_nin,
	"$exists": _op_exists,
	"$regex":  _op_regex,
	"$not":    _op_not,
}


def _is_operator_map(condition: typing.Any) -> bool:
	return isinstance(condition, typing.Mapping) \
	       and any(name.startswith("$") for name in condition)


def _test(value: typing.Any, condition: typing.Any) -> bool:
	if not _is_operator_map(condition):
		return _op_eq(value, condition)
	
	for operator, argument in condition.items():
		try:
			function = _OPERATORS[operator]
		except KeyError:
			raise errors.InvalidArgumentError(f"Unknown operator {operator!r}") from None
		if not function(value, argument):
			return False
	return True


def matches(selector: Selector, doc: typing.Mapping[str, typing.Any]) -> bool:
	"""Returns whether *doc* satisfies every condition of *selector*"""
	for name, condition in selector.items():
		if name == "$and":
			if not all(matches(item, doc) for item in condition):
				return False
		elif name == "$or":
			if not any(matches(item, doc) for item in condition):
				return False
		elif name == "$nor":
			if any(matches(item, doc) for item in condition):
				return False
		elif name == "$not":
			if matches(condition, doc):
				return False
		elif name.startswith("$"):
			raise errors.InvalidArgumentError(f"Unknown combination operator {name!r}")
		elif not _test(resolve(doc, name), condition):
			return False
	return True


def _sort_key(name: str, doc: typing.Mapping[str, typing.Any]) -> typing.Tuple[typing.Any, ...]:
	# Documents lacking the field go first
	value = resolve(doc, name)
	return (0,) if value is MISSING else (1, collation_key(value))


def sort_documents(docs: typing.List[typing.Dict[str, typing.Any]],
                   sort: typing.Sequence[typing.Union[str, typing.Mapping[str, str]]]) -> None:
	"""Sorts *docs* in place by the CouchDB-style *sort* specification
	
	Each entry is either a field name (ascending) or a single-item mapping of
	field name to ``"asc"`` or ``"desc"``.
	"""
	# Apply least significant key first, relying on sort stability
	for entry in reversed(list(sort)):
		if isinstance(entry, str):
			name, direction = entry, "asc"
		else:
			(name, direction), = entry.items()
		if direction not in ("asc", "desc"):
			raise errors.InvalidArgumentError(f"Invalid sort direction {direction!r}")
		docs.sort(key=functools.partial(_sort_key, name), reverse=(direction == "desc"))


def project(doc: typing.Mapping[str, typing.Any], fields: typing.Iterable[str]) \
    -> typing.Dict[str, typing.Any]:
	"""Returns a copy of *doc* reduced to the given dotted *fields*"""
	result: typing.Dict[str, typing.Any] = {}
	for path in fields:
		value = resolve(doc, path)
		if value is MISSING:
			continue
		target = result
		*parents, leaf = path.split(".")
		for part in parents:
			target = target.setdefault(part, {})
		target[leaf] = value
	return result
