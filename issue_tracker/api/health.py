from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from .deps import get_store
from ..db.store import IssueStore, StoreUnavailable

router = APIRouter(tags=["health"])

@router.get("/health")
async def health(store: IssueStore = Depends(get_store)):
    try:
        await store.ping()
    except StoreUnavailable:
        return JSONResponse(status_code=500, content={"error": "Database error"})
    return {"ok": True}
