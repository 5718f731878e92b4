from __future__ import annotations
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from typing import Any

from .deps import get_store, read_body
from ..core.logging import get_logger
from ..db.store import IssueStore, StoreError, StoreUnavailable, InvalidIssueId, IssueNotFound, is_valid_id
from ..schemas import IssueCreate, IssueUpdate, IssueOut

router = APIRouter(prefix="/issues", tags=["issues"])
logger = get_logger(__name__)

def _error(message: str, status_code: int = 400, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})

def _out(issue) -> dict:
    return IssueOut.model_validate(issue).model_dump(by_alias=True, mode="json")

@router.get("/{project}")
async def list_issues(project: str, request: Request, store: IssueStore = Depends(get_store)):
    # Every query parameter is an exact-match filter; the path project always applies
    filters = {**dict(request.query_params), "project": project}
    logger.info("issue_search", filters=filters)
    try:
        issues = await store.find_many(filters)
    except StoreUnavailable:
        return _error("Server error", 500)
    return [_out(i) for i in issues]

@router.post("/{project}")
async def create_issue(project: str, request: Request, store: IssueStore = Depends(get_store)):
    body = await read_body(request)
    try:
        payload = IssueCreate.model_validate(body)
    except ValidationError:
        return _error("required field(s) missing")
    if payload.missing_required():
        return _error("required field(s) missing")

    try:
        issue = await store.create(project, payload.model_dump())
    except StoreUnavailable:
        return _error("Database error", 500)
    return _out(issue)

@router.put("/{project}")
async def update_issue(project: str, request: Request, store: IssueStore = Depends(get_store)):
    body = await read_body(request)
    _id = body.pop("_id", None)
    if not _id:
        return _error("missing _id")
    if not is_valid_id(_id):
        return _error("could not update", _id=_id)

    try:
        changes = IssueUpdate.model_validate(body).changes()
    except ValidationError as e:
        logger.info("issue_update_rejected", issue_id=_id, errors=e.error_count())
        return _error("could not update", _id=_id)
    if not changes:
        return _error("no update field(s) sent", _id=_id)

    try:
        await store.update_by_id(_id, changes)
    except (InvalidIssueId, IssueNotFound):
        return _error("could not update", _id=_id)
    except StoreError:
        logger.warning("issue_update_failed", issue_id=_id)
        return _error("could not update", _id=_id)
    return {"result": "successfully updated", "_id": _id}

@router.delete("/{project}")
async def delete_issue(project: str, request: Request, store: IssueStore = Depends(get_store)):
    body = await read_body(request)
    _id = body.get("_id")
    if not _id:
        return _error("missing _id")
    if not is_valid_id(_id):
        return _error("could not delete", _id=_id)

    try:
        await store.delete_by_id(_id)
    except (InvalidIssueId, IssueNotFound):
        return _error("could not delete", _id=_id)
    except StoreError:
        logger.warning("issue_delete_failed", issue_id=_id)
        return _error("could not delete", _id=_id)
    return {"result": "successfully deleted", "_id": _id}
