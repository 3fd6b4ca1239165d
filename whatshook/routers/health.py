from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from whatshook.dependencies import get_health_service
from whatshook.services.health_service import HEALTHY, READY_TAG, UNHEALTHY, HealthService

router = APIRouter(prefix="/health", tags=["health"])


def _report_response(report: dict) -> JSONResponse:
    status_code = 503 if report["status"] == UNHEALTHY else 200
    return JSONResponse(status_code=status_code, content=report)


@router.get("")
async def health(service: HealthService = Depends(get_health_service)):
    return _report_response(await run_in_threadpool(service.run))


@router.get("/ready")
async def ready(service: HealthService = Depends(get_health_service)):
    return _report_response(await run_in_threadpool(service.run, READY_TAG))


@router.get("/live")
async def live():
    return {"status": HEALTHY}
