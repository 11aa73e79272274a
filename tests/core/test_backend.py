import pytest
import trio.testing

import pouchy
from pouchy.core import selector


@trio.testing.trio_test
async def test_null():
	b = pouchy.NullBackend()
	
	with pytest.raises(pouchy.NotFoundError):
		await b.get("a")
	
	meta = await b.put({"_id": "a", "x": 1})
	assert meta["id"] == "a"
	assert meta["ok"]
	
	with pytest.raises(pouchy.NotFoundError):
		await b.get("a")
	
	assert (await b.all_docs(include_docs=True))["rows"] == []
	assert (await b.find({"selector": {}}))["docs"] == []
	result = await b.bulk_get([{"id": "a"}])
	assert "ok" not in result["results"][0]["docs"][0]


@trio.testing.trio_test
async def test_memory_revisions(backend):
	meta1 = await backend.put({"_id": "a", "n": 1})
	assert meta1["rev"].startswith("1-")
	
	with pytest.raises(pouchy.ConflictError):
		await backend.put({"_id": "a", "n": 2})
	with pytest.raises(pouchy.ConflictError):
		await backend.put({"_id": "a", "_rev": "1-stale", "n": 2})
	
	meta2 = await backend.put({"_id": "a", "_rev": meta1["rev"], "n": 2})
	assert meta2["rev"].startswith("2-")
	
	assert await backend.get("a") == {"_id": "a", "_rev": meta2["rev"], "n": 2}
	assert await backend.get("a", rev=meta1["rev"]) == {"_id": "a", "_rev": meta1["rev"], "n": 1}
	assert len(backend) == 1


@trio.testing.trio_test
async def test_memory_documents_are_copied(backend):
	doc = {"_id": "a", "nested": {"n": 1}}
	await backend.put(doc)
	doc["nested"]["n"] = 2
	
	fetched = await backend.get("a")
	assert fetched["nested"] == {"n": 1}
	fetched["nested"]["n"] = 3
	assert (await backend.get("a"))["nested"] == {"n": 1}


@trio.testing.trio_test
async def test_memory_invalid_ids(backend):
	with pytest.raises(pouchy.BackendError) as excinfo:
		await backend.put({"_id": ""})
	assert excinfo.value.status == 412
	
	with pytest.raises(pouchy.BackendError) as excinfo:
		await backend.put({"_id": 0})
	assert excinfo.value.status == 400
	
	with pytest.raises(pouchy.BackendError):
		await backend.put({"_id": "_private"})


@trio.testing.trio_test
async def test_memory_post_generates_ids(backend):
	meta1 = await backend.post({"x": 1})
	meta2 = await backend.post({"_id": "ignored", "x": 2})
	assert meta1["id"] and meta2["id"]
	assert meta1["id"] != meta2["id"]
	assert meta2["id"] != "ignored"
	assert meta1["rev"].startswith("1-")


@trio.testing.trio_test
async def test_memory_remove(backend):
	meta = await backend.put({"_id": "a"})
	
	with pytest.raises(pouchy.ConflictError):
		await backend.remove({"_id": "a"})
	
	ack = await backend.remove({"_id": "a", "_rev": meta["rev"]})
	assert ack["ok"]
	assert ack["rev"].startswith("2-")
	
	with pytest.raises(pouchy.NotFoundError):
		await backend.get("a")
	with pytest.raises(pouchy.NotFoundError):
		await backend.remove({"_id": "a", "_rev": ack["rev"]})
	with pytest.raises(pouchy.NotFoundError):
		await backend.remove({"_id": "b", "_rev": "1-x"})
	assert (await backend.all_docs())["rows"] == []
	
	# Deleted documents may be recreated
	meta = await backend.put({"_id": "a"})
	assert meta["rev"].startswith("3-")


@trio.testing.trio_test
async def test_memory_all_docs(backend):
	for doc_id in ("c", "a", "b"):
		await backend.put({"_id": doc_id, "name": doc_id})
	
	result = await backend.all_docs()
	assert result["total_rows"] == 3
	assert [row["id"] for row in result["rows"]] == ["a", "b", "c"]
	assert all("doc" not in row and row["value"]["rev"] for row in result["rows"])
	
	result = await backend.all_docs(include_docs=True, descending=True, limit=2)
	assert [row["doc"]["name"] for row in result["rows"]] == ["c", "b"]
	
	result = await backend.all_docs(startkey="b", endkey="c")
	assert [row["id"] for row in result["rows"]] == ["b", "c"]


@trio.testing.trio_test
async def test_memory_local_documents_are_not_listed(backend):
	await backend.put({"_id": "a"})
	await backend.put({"_id": "_local/checkpoint", "seq": 5})
	
	result = await backend.all_docs(include_docs=True)
	assert [row["id"] for row in result["rows"]] == ["a"]
	assert result["total_rows"] == 1
	assert [doc["_id"] for doc in (await backend.find({"selector": {}}))["docs"]] == ["a"]
	assert (await backend.info()).doc_count == 1
	
	# Still retrievable by identifier
	assert (await backend.get("_local/checkpoint"))["seq"] == 5


@trio.testing.trio_test
async def test_memory_bulk_get(backend):
	meta = await backend.put({"_id": "a", "n": 1})
	await backend.put({"_id": "a", "_rev": meta["rev"], "n": 2})
	
	result = await backend.bulk_get([{"id": "a", "rev": meta["rev"]}, {"id": "a"}, {"id": "zzz"}])
	groups = result["results"]
	assert [group["id"] for group in groups] == ["a", "a", "zzz"]
	assert groups[0]["docs"][0]["ok"]["n"] == 1
	assert groups[1]["docs"][0]["ok"]["n"] == 2
	assert groups[2]["docs"][0]["error"]["error"] == "not_found"


@trio.testing.trio_test
async def test_memory_find(backend):
	for doc_id, name, age in (("1", "ann", 31), ("2", "bob", 25), ("3", "cid", 40), ("4", "dee", None)):
		await backend.put({"_id": doc_id, "name": name, "age": age, "pet": {"kind": "cat"}})
	await backend.create_index({"fields": ["age"]})
	
	result = await backend.find({"selector": {"age": {"$gt": 26}}})
	assert sorted(doc["name"] for doc in result["docs"]) == ["ann", "cid"]
	
	result = await backend.find({
		"selector": {"$or": [{"name": "bob"}, {"age": {"$gte": 40}}]},
		"sort": [{"name": "desc"}],
		"fields": ["name", "pet.kind"],
	})
	assert result["docs"] == [{"name": "cid", "pet": {"kind": "cat"}},
	                          {"name": "bob", "pet": {"kind": "cat"}}]
	
	result = await backend.find({"selector": {"pet.kind": "cat"}, "sort": ["name"], "skip": 1, "limit": 2})
	assert [doc["name"] for doc in result["docs"]] == ["bob", "cid"]
	
	with pytest.raises(pouchy.InvalidArgumentError):
		await backend.find({})
	with pytest.raises(pouchy.InvalidArgumentError):
		await backend.find({"selector": {"age": {"$bogus": 1}}})


@trio.testing.trio_test
async def test_memory_create_index(backend):
	result = await backend.create_index({"fields": ["a", "b"]})
	assert result["result"] == "created"
	assert result["id"].startswith("_design/idx-")
	
	with pytest.raises(pouchy.ConflictError):
		await backend.create_index({"fields": ["a", "b"]})
	
	other = await backend.create_index({"fields": ["b"]})
	assert other["id"] != result["id"]
	
	named = await backend.create_index({"fields": ["c"]}, name="by-c", ddoc="mine")
	assert named == {"result": "created", "id": "_design/mine", "name": "by-c"}
	
	design = await backend.get("_design/mine")
	assert design["views"]["by-c"]["options"]["def"]["fields"] == ["c"]
	
	with pytest.raises(pouchy.InvalidArgumentError):
		await backend.create_index({"fields": []})


@trio.testing.trio_test
async def test_memory_destroy(backend):
	await backend.put({"_id": "a"})
	info = await backend.info()
	assert info == pouchy.util.DatabaseInfo(db_name="test", doc_count=1, update_seq=1)
	
	assert await backend.destroy() == {"ok": True}
	
	with pytest.raises(pouchy.BackendError, match="destroyed"):
		await backend.get("a")
	with pytest.raises(pouchy.BackendError, match="destroyed"):
		await backend.destroy()


@trio.testing.trio_test
async def test_memory_aclose(backend):
	async with backend:
		await backend.put({"_id": "a"})
	
	with pytest.raises(pouchy.BackendError, match="closed"):
		await backend.get("a")


def test_selector_operators():
	doc = {"n": 5, "s": "hello", "l": [1, 2], "d": {"x": None}}
	
	assert selector.matches({"n": 5}, doc)
	assert selector.matches({"n": {"$gte": 5, "$lt": 6}}, doc)
	assert not selector.matches({"n": {"$ne": 5}}, doc)
	assert selector.matches({"n": {"$in": [4, 5]}, "s": {"$nin": ["bye"]}}, doc)
	assert selector.matches({"s": {"$regex": "^he"}}, doc)
	assert selector.matches({"d.x": {"$exists": True}, "d.y": {"$exists": False}}, doc)
	assert selector.matches({"d.x": None}, doc)
	assert selector.matches({"n": {"$not": {"$eq": 4}}}, doc)
	assert selector.matches({"$nor": [{"n": 4}, {"s": "bye"}]}, doc)
	assert selector.matches({"$not": {"n": 4}}, doc)
	assert selector.matches({"l": [1, 2]}, doc)
	
	# Mixed types are collated, never compared natively
	assert selector.matches({"s": {"$gt": 100}}, doc)
	assert not selector.matches({"missing": {"$lt": 100}}, doc)
	assert not selector.matches({"missing": {"$ne": 1}}, doc)
