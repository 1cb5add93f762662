from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from packbuilder import __version__

router = APIRouter(prefix="/api/v1/health", tags=["health"])

# unversioned, scraped by Prometheus
scrape_router = APIRouter()


@router.get("/live")
def live():
    return {"status": "ok", "version": __version__}


@scrape_router.get("/metrics", include_in_schema=False)
def prometheus_metrics() -> Response:
    return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
