from __future__ import annotations

from fastapi import APIRouter

from ledger_service.api.schemas.envelope import ok
from ledger_service.settings import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    store = "sql" if get_settings().uses_sql else "memory"
    return ok({"status": "ok", "store": store}, "Service is healthy")
