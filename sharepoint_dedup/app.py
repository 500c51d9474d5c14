"""
Main FastAPI entry point for the SharePoint deduplicator.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from sharepoint_dedup.config import settings
from sharepoint_dedup.core.errors import DedupError, ErrorKind
from sharepoint_dedup.core.rate_limit import limiter
from sharepoint_dedup.routes.sharepoint import router as sharepoint_router

logging.basicConfig(
    level=settings.server.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CANCELLED: 409,
    ErrorKind.TRANSPORT: 502,
    ErrorKind.REMOTE_API: 502,
}


app = FastAPI(
    title="SharePoint Deduplicator API",
    description="Find duplicate files in SharePoint document libraries and replace them with shortcuts",
    version="1.0.0",
)

# Set up Rate Limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# The web front-end is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DedupError)
async def dedup_error_handler(request: Request, exc: DedupError):
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind.value},
    )


app.include_router(sharepoint_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "graph_configured": settings.azure_ad.is_configured()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sharepoint_dedup.app:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.debug,
    )
