import asyncio
from datetime import datetime, timedelta

import pytest

from issue_tracker.db.database import Database
from issue_tracker.db.store import (
    IssueNotFound,
    StoreError,
    IssueStore,
    InvalidIssueId,
    StoreUnavailable,
    UnknownIssueField,
    is_valid_id,
    new_id,
    parse_timestamp,
)

FIELDS = {"issue_title": "T", "issue_text": "X", "created_by": "A"}


class FrozenClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def run_with_store(tmp_path, scenario, clock=None):
    async def _run():
        db = Database(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
        await db.connect()
        try:
            store = IssueStore(db, clock=clock) if clock else IssueStore(db)
            return await scenario(store)
        finally:
            await db.disconnect()

    return asyncio.run(_run())


def test_new_ids_are_well_formed_and_distinct():
    ids = {new_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(is_valid_id(i) for i in ids)


@pytest.mark.parametrize("value", ["invalid_id", "", None, 42, "0123456789abcdef0123456g", "0123456789abcdef012345678"])
def test_malformed_ids(value):
    assert not is_valid_id(value)


def test_parse_timestamp_normalizes_to_naive_utc():
    assert parse_timestamp("2024-03-01T10:00:00.250Z") == datetime(2024, 3, 1, 10, 0, 0, 250000)
    assert parse_timestamp("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0, 0)


def test_create_sets_defaults(tmp_path):
    start = datetime(2024, 1, 1, 12, 0, 0)

    async def scenario(store):
        issue = await store.create("proj", FIELDS)
        again = await store.find_by_id(issue.id)
        return issue, again

    issue, again = run_with_store(tmp_path, scenario, clock=FrozenClock(start))
    assert issue.project == "proj"
    assert issue.assigned_to == ""
    assert issue.status_text == ""
    assert issue.open is True
    assert issue.created_on == issue.updated_on == start
    assert again.id == issue.id


def test_find_many_exact_match(tmp_path):
    async def scenario(store):
        await store.create("proj", {**FIELDS, "assigned_to": "Joe"})
        await store.create("proj", {**FIELDS, "assigned_to": "Joe Smith"})
        await store.create("elsewhere", {**FIELDS, "assigned_to": "Joe"})
        return await store.find_many({"project": "proj", "assigned_to": "Joe"})

    found = run_with_store(tmp_path, scenario)
    assert [(i.project, i.assigned_to) for i in found] == [("proj", "Joe")]


def test_update_merges_and_moves_updated_on_forward(tmp_path):
    start = datetime(2024, 1, 1, 12, 0, 0)
    clock = FrozenClock(start)

    async def scenario(store):
        issue = await store.create("proj", FIELDS)
        # Same clock tick as creation
        first = await store.update_by_id(issue.id, {"status_text": "Blocked"})
        first_updated = first.updated_on
        clock.now = start + timedelta(minutes=5)
        second = await store.update_by_id(issue.id.upper(), {"open": False})
        return issue, first_updated, second

    issue, first_updated, second = run_with_store(tmp_path, scenario, clock=clock)
    assert first_updated == start + timedelta(milliseconds=1)
    assert second.updated_on == start + timedelta(minutes=5)
    assert second.created_on == start
    assert second.status_text == "Blocked"
    assert second.open is False
    assert second.issue_title == "T"


def test_update_rejects_unknown_fields(tmp_path):
    async def scenario(store):
        issue = await store.create("proj", FIELDS)
        with pytest.raises(UnknownIssueField) as excinfo:
            await store.update_by_id(issue.id, {"created_on": datetime(2000, 1, 1)})
        assert excinfo.value.fields == ["created_on"]
        assert isinstance(excinfo.value, StoreError)

    run_with_store(tmp_path, scenario)


def test_id_errors_are_distinct(tmp_path):
    async def scenario(store):
        with pytest.raises(InvalidIssueId):
            await store.find_by_id("invalid_id")
        with pytest.raises(IssueNotFound):
            await store.find_by_id(new_id())
        with pytest.raises(InvalidIssueId):
            await store.update_by_id("invalid_id", {"open": False})
        with pytest.raises(IssueNotFound):
            await store.update_by_id(new_id(), {"open": False})
        with pytest.raises(InvalidIssueId):
            await store.delete_by_id("invalid_id")
        with pytest.raises(IssueNotFound):
            await store.delete_by_id(new_id())

    run_with_store(tmp_path, scenario)


def test_delete_removes_document(tmp_path):
    async def scenario(store):
        issue = await store.create("proj", FIELDS)
        await store.delete_by_id(issue.id)
        with pytest.raises(IssueNotFound):
            await store.delete_by_id(issue.id)
        return await store.find_many({"project": "proj"})

    assert run_with_store(tmp_path, scenario) == []


def test_engine_failure_is_store_unavailable(tmp_path):
    async def scenario(store):
        await store.create("proj", FIELDS)
        async with store.db.engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE issues")
        with pytest.raises(StoreUnavailable):
            await store.find_many({"project": "proj"})

    run_with_store(tmp_path, scenario)
