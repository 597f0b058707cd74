# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests: change event documents with wrapped
# identifiers, change event envelopes, and a UDF registration helper that
# cleans up after itself.
# ==============================================

import json

import pytest

from cdcrow.core import UdfRegistry, register_udf


OID = "64b7f0c2e4b0a1a2b3c4d5e6"


@pytest.fixture
def oid() -> str:
    return OID


@pytest.fixture
def make_document():
    """Return a builder for document JSON text with a wrapped `_id`."""
    def build(fields: dict, oid: str = OID) -> str:
        return json.dumps({"_id": {"$oid": oid}, **fields})
    return build


@pytest.fixture
def order_document(make_document) -> str:
    return make_document({
        "customer": {"name": "Ada", "tier": "gold"},
        "total": 42.5,
        "items": [{"sku": "A-1", "qty": 2}, {"sku": "B-7", "qty": 1}],
        "created_at": "2024-07-01T12:34:56Z",
        "paid": True,
        "note": None,
    })


@pytest.fixture
def make_event(make_document):
    """Return a builder for change stream events as delivered by the source."""
    def build(op: str = "insert", fields: dict = None, oid: str = OID, db: str = "shop", coll: str = "orders") -> dict:
        event = {"operationType": op, "ns": {"db": db, "coll": coll}}
        if op == "delete":
            event["documentKey"] = json.dumps({"_id": {"$oid": oid}})
        else:
            event["fullDocument"] = make_document(fields or {}, oid)
        return event
    return build


@pytest.fixture
def udfs():
    """Register UDFs for one test and remove them afterwards."""
    names = []

    def register(name, func):
        register_udf(name, func)
        names.append(name)

    yield register

    for name in names:
        UdfRegistry.unregister(name)
