import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from family_budget import db
from family_budget.config import get_settings
from family_budget.errors import CategoryError, CategoryStoreError
from family_budget.logging_config import configure_logging
from family_budget.routers import categories_router, families_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(get_settings().LOG_LEVEL)
    await db.init_db()
    yield


app = FastAPI(lifespan=lifespan)
app.include_router(families_router)
app.include_router(categories_router)


@app.exception_handler(CategoryError)
async def handle_category_error(request: Request, exc: CategoryError) -> JSONResponse:
    if isinstance(exc, CategoryStoreError):
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/")
def read_root() -> dict[str, str]:
    return {"status": "ok"}
