from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from ..db import check_db_health

router = APIRouter(tags=["system"])


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    engine = getattr(request.app.state, "engine", None)
    db_ok = check_db_health(engine) if engine is not None else None
    return {"status": "ok" if db_ok is not False else "degraded", "database": db_ok}
