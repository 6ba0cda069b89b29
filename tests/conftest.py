import os

# The Couchbase client validates its settings at import time.
os.environ.setdefault("COUCHBASE_USERNAME", "test")
os.environ.setdefault("COUCHBASE_PASSWORD", "test")
os.environ.setdefault("COUCHBASE_HOST", "localhost")
os.environ.setdefault("COUCHBASE_BUCKET", "auctionhouse")
os.environ.setdefault("COUCHBASE_PROTOCOL", "couchbase")
os.environ.setdefault("AUCTION_SCHEDULER_ENABLED", "false")

import copy
import itertools
import re
from datetime import datetime, timedelta, timezone

import pytest
from couchbase.exceptions import (
    CASMismatchException,
    DocumentExistsException,
    DocumentNotFoundException,
)

from auctionhouse.clients.couchbase import config as couchbase_config
from auctionhouse.models.operations.players import player_create, player_get
from auctionhouse.utils import timeutil


class FakeContent:
    def __init__(self, value):
        self._value = value

    def __getitem__(self, _type):
        return copy.deepcopy(self._value)


class FakeGetResult:
    def __init__(self, value, cas):
        self.content_as = FakeContent(value)
        self.cas = cas


class FakeMutationResult:
    def __init__(self, cas):
        self.cas = cas


class FakeCollection:
    """In-memory collection with Couchbase CAS semantics.

    ``before_write`` is an optional ``async (op, key)`` hook run before every
    insert/upsert/replace, used to interleave writes or inject failures.
    """

    _cas_counter = itertools.count(1)

    def __init__(self, name):
        self.name = name
        self.docs = {}
        self.before_write = None

    def write_raw(self, key, value):
        cas = next(self._cas_counter)
        self.docs[key] = (copy.deepcopy(value), cas)
        return FakeMutationResult(cas)

    def raw(self, key):
        return copy.deepcopy(self.docs[key][0])

    async def _hook(self, op, key):
        if self.before_write is not None:
            await self.before_write(op, key)

    async def get(self, key, **kwargs):
        if key not in self.docs:
            raise DocumentNotFoundException()
        value, cas = self.docs[key]
        return FakeGetResult(copy.deepcopy(value), cas)

    async def insert(self, key, value, **kwargs):
        await self._hook("insert", key)
        if key in self.docs:
            raise DocumentExistsException()
        return self.write_raw(key, value)

    async def upsert(self, key, value, **kwargs):
        await self._hook("upsert", key)
        return self.write_raw(key, value)

    async def replace(self, key, value, cas=None, **kwargs):
        await self._hook("replace", key)
        if key not in self.docs:
            raise DocumentNotFoundException()
        if cas and self.docs[key][1] != cas:
            raise CASMismatchException()
        return self.write_raw(key, value)

    async def remove(self, key, **kwargs):
        if key not in self.docs:
            raise DocumentNotFoundException()
        _, cas = self.docs.pop(key)
        return FakeMutationResult(cas)


async def _rows_async(rows):
    for row in rows:
        yield row


class FakeScope:
    def __init__(self, cluster):
        self._cluster = cluster

    def collection(self, name):
        return self._cluster.collection(name)


class FakeBucket:
    def __init__(self, cluster):
        self._cluster = cluster

    def scope(self, name):
        return FakeScope(self._cluster)


class FakeCluster:
    def __init__(self):
        self.collections = {}

    def bucket(self, name):
        return FakeBucket(self)

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def ping(self):
        return True

    def query(self, statement, options=None):
        """Answer ``SELECT META().id, * FROM <keyspace> WHERE field = $param ...``
        with equality filters, ordered by document key."""
        collection_name = re.search(r"FROM\s+(\S+)", statement).group(1).split(".")[-1]
        params = dict((options or {}).get("named_parameters") or {})
        filters = re.findall(r"(\w+)\s*=\s*\$(\w+)", statement)
        collection = self.collection(collection_name)
        rows = [
            {"id": key, collection_name: copy.deepcopy(value)}
            for key, (value, _cas) in sorted(collection.docs.items())
            if all(value.get(field) == params.get(param) for field, param in filters)
        ]
        return _rows_async(rows)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture(autouse=True)
def cluster(monkeypatch):
    fake = FakeCluster()
    monkeypatch.setattr(couchbase_config, "_cluster", fake)
    return fake


@pytest.fixture(autouse=True)
def clock(monkeypatch):
    fake = FakeClock(datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(timeutil, "utcnow", fake)
    return fake


@pytest.fixture
def make_player():
    async def _make(name, coins=1000, inventory=None):
        return await player_create(name, coins=coins, inventory=inventory if inventory is not None else {})
    return _make


@pytest.fixture
def refresh():
    async def _refresh(player):
        return await player_get(player.id)
    return _refresh
