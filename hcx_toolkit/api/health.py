from fastapi import APIRouter, Request

from ..timeutils import get_ist_timestamp

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/hcx/v1/health")
def health(request: Request):
    return {"status": "ok", "service": request.app.title, "timestamp": get_ist_timestamp()}
