from fastapi import Request
from starlette.exceptions import HTTPException
from ..db.store import IssueStore

def get_store(request: Request) -> IssueStore:
    return request.app.state.store

async def read_body(request: Request) -> dict:
    """Parses a JSON or form body into a dict; anything unreadable counts as empty."""
    ctype = request.headers.get("content-type", "")
    try:
        if ctype.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
            form = await request.form()
            return dict(form)
        raw = await request.body()
        if not raw.strip():
            return {}
        data = await request.json()
    except (ValueError, HTTPException):
        # Starlette reports broken multipart bodies as HTTPException(400)
        return {}
    return data if isinstance(data, dict) else {}
