import copy
import os
from types import SimpleNamespace

import pytest
from bson import ObjectId

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "formgen_test")
os.environ.setdefault("PUBLIC_BASE_URL", "https://forms.example.test")

from fastapi.testclient import TestClient  # noqa: E402

import formgen.database  # noqa: E402
import formgen.queries  # noqa: E402
import formgen.routers.fields  # noqa: E402
import formgen.routers.forms  # noqa: E402
import formgen.routers.public  # noqa: E402
import formgen.routers.submissions  # noqa: E402

PATCHED_MODULES = [
    formgen.database,
    formgen.queries,
    formgen.routers.fields,
    formgen.routers.forms,
    formgen.routers.public,
    formgen.routers.submissions,
]


class _Cursor:
    def __init__(self, docs):
        self._docs = docs

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


def _sort_key(key):
    def _key(doc):
        value = doc.get(key)
        return (value is not None, value if value is not None else 0)
    return _key


def _sorted(docs, sort):
    for key, direction in reversed(sort or []):
        docs = sorted(docs, key=_sort_key(key), reverse=direction < 0)
    return docs


class FakeCollection:
    """Just enough of motor's AsyncIOMotorCollection for the routers: equality filters and $set."""

    def __init__(self):
        self.docs = []
        self.indexes = []

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return str(keys)

    def find(self, query=None, projection=None, sort=None):
        docs = [copy.deepcopy(d) for d in self.docs if _matches(d, query or {})]
        return _Cursor(_sorted(docs, sort))

    async def find_one(self, query=None, sort=None):
        docs = _sorted([d for d in self.docs if _matches(d, query or {})], sort)
        return copy.deepcopy(docs[0]) if docs else None

    async def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def insert_many(self, docs):
        ids = [(await self.insert_one(doc)).inserted_id for doc in docs]
        return SimpleNamespace(inserted_ids=ids)

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def replace_one(self, query, replacement):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                self.docs[i] = copy.deepcopy(replacement)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))


@pytest.fixture
def store(monkeypatch):
    fakes = {
        "forms_collection": FakeCollection(),
        "fields_collection": FakeCollection(),
        "submissions_collection": FakeCollection(),
    }
    for module in PATCHED_MODULES:
        for name, fake in fakes.items():
            if hasattr(module, name):
                monkeypatch.setattr(module, name, fake)
    return SimpleNamespace(
        forms=fakes["forms_collection"],
        fields=fakes["fields_collection"],
        submissions=fakes["submissions_collection"],
    )


@pytest.fixture
def client(store):
    from formgen.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_form(client):
    """Create a form with the given field payloads and return (form_id, [field dicts])."""

    def _make(name="Newsletter signup", fields=()):
        form_id = client.post("/api/forms", json={"name": name}).json()["formId"]
        created = []
        for payload in fields:
            r = client.post(f"/api/forms/{form_id}/fields", json=payload)
            assert r.status_code == 200, r.text
            created.append(r.json())
        return form_id, created

    return _make
