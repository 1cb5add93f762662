from __future__ import annotations

from fastapi import FastAPI

from packbuilder import __version__
from packbuilder.api.endpoints import builders, health, stacks
from packbuilder.api.middleware.error_shaping import SafeErrorMiddleware, builder_error_handler
from packbuilder.core.errors import BuilderError

app = FastAPI(
    title="packbuilder API",
    version=__version__,
)

app.add_middleware(SafeErrorMiddleware)
app.add_exception_handler(BuilderError, builder_error_handler)

app.include_router(health.router)
app.include_router(stacks.router)
app.include_router(builders.router)
app.include_router(health.scrape_router)
