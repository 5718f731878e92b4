"""
Issue store: persistence of issue documents in a single flat collection.

Query execution, indexing and write isolation are left to the database
engine. Every failure of the engine itself is surfaced as StoreUnavailable,
distinct from the id errors callers can act on.
"""
from __future__ import annotations

import re
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable, List, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.logging import get_logger
from .database import Database
from .models import Issue

logger = get_logger(__name__)

MUTABLE_FIELDS = ("issue_title", "issue_text", "created_by", "assigned_to", "status_text", "open")
FILTER_FIELDS = ("project", "created_on", "updated_on") + MUTABLE_FIELDS

_ID_RE = re.compile(r"[0-9a-fA-F]{24}")
_TRUE = {"true", "1"}
_FALSE = {"false", "0"}


class StoreError(Exception):
    pass


class StoreUnavailable(StoreError):
    """The database could not be reached or rejected the operation."""


class InvalidIssueId(StoreError):
    def __init__(self, issue_id: Any):
        super().__init__(f"Malformed issue id: {issue_id!r}")
        self.issue_id = issue_id


class IssueNotFound(StoreError):
    def __init__(self, issue_id: str):
        super().__init__(f"No issue with id {issue_id}")
        self.issue_id = issue_id


class UnknownIssueField(StoreError):
    def __init__(self, fields):
        super().__init__(f"Fields cannot be updated: {', '.join(sorted(fields))}")
        self.fields = sorted(fields)


def new_id() -> str:
    return secrets.token_hex(12)


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_RE.fullmatch(value))


def to_millis(dt: datetime) -> datetime:
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def now_utc() -> datetime:
    # Stored timestamps are naive UTC at millisecond precision
    return to_millis(datetime.now(timezone.utc).replace(tzinfo=None))


def parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _cast(field: str, value: Any) -> Any:
    """Casts a filter value to the stored type of `field`. Raises ValueError when it cannot."""
    if field == "open":
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if field in ("created_on", "updated_on"):
        if isinstance(value, datetime):
            return value
        return parse_timestamp(str(value))
    if isinstance(value, (dict, list)) or value is None:
        raise ValueError(f"not a scalar: {value!r}")
    return str(value)


class IssueStore:
    def __init__(self, db: Database, clock: Callable[[], datetime] = now_utc):
        self.db = db
        self.clock = clock

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.db.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("store_unavailable", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailable(str(e)) from e

    async def ping(self) -> None:
        try:
            await self.db.ping()
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    async def create(self, project: str, fields: Mapping[str, Any]) -> Issue:
        now = self.clock()
        issue = Issue(
            id=new_id(),
            project=project,
            issue_title=fields["issue_title"],
            issue_text=fields["issue_text"],
            created_by=fields["created_by"],
            assigned_to=fields.get("assigned_to") or "",
            status_text=fields.get("status_text") or "",
            created_on=now,
            updated_on=now,
            open=True,
        )
        async with self._session() as session:
            session.add(issue)
            await session.commit()
        logger.info("issue_created", issue_id=issue.id, project=project)
        return issue

    async def find_many(self, filters: Mapping[str, Any]) -> List[Issue]:
        """Returns every issue whose stored fields equal all of `filters`."""
        stmt = select(Issue)
        for key, value in filters.items():
            if key == "_id":
                if not is_valid_id(value):
                    return []
                stmt = stmt.where(Issue.id == value.lower())
                continue
            if key not in FILTER_FIELDS:
                return []
            try:
                stmt = stmt.where(getattr(Issue, key) == _cast(key, value))
            except ValueError:
                return []
        stmt = stmt.order_by(Issue.created_on, Issue.id)
        async with self._session() as session:
            res = await session.execute(stmt)
            return list(res.scalars().all())

    async def find_by_id(self, issue_id: Any) -> Issue:
        if not is_valid_id(issue_id):
            raise InvalidIssueId(issue_id)
        async with self._session() as session:
            issue = await session.get(Issue, issue_id.lower())
        if issue is None:
            raise IssueNotFound(issue_id)
        return issue

    async def update_by_id(self, issue_id: Any, changes: Mapping[str, Any]) -> Issue:
        if not is_valid_id(issue_id):
            raise InvalidIssueId(issue_id)
        unknown = set(changes) - set(MUTABLE_FIELDS)
        if unknown:
            raise UnknownIssueField(unknown)
        async with self._session() as session:
            issue = await session.get(Issue, issue_id.lower())
            if issue is None:
                raise IssueNotFound(issue_id)
            for key, value in changes.items():
                setattr(issue, key, value)
            # updated_on moves strictly forward, even within one clock tick
            now = self.clock()
            floor = issue.updated_on + timedelta(milliseconds=1)
            issue.updated_on = now if now >= floor else floor
            await session.commit()
        logger.info("issue_updated", issue_id=issue.id, fields=sorted(changes))
        return issue

    async def delete_by_id(self, issue_id: Any) -> None:
        if not is_valid_id(issue_id):
            raise InvalidIssueId(issue_id)
        async with self._session() as session:
            issue = await session.get(Issue, issue_id.lower())
            if issue is None:
                raise IssueNotFound(issue_id)
            await session.delete(issue)
            await session.commit()
        logger.info("issue_deleted", issue_id=issue_id)
