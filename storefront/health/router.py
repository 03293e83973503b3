from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from storefront.health import service as health_service
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/supabase")
def health_supabase(request: Request):
    services = getattr(request.app.state, "services", None)
    client = getattr(services, "supabase", None)
    return JSONResponse(health_service.health_supabase_info(client))

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
