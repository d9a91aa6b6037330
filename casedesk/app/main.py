import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from casedesk.app.api.config import seed_on_startup
from casedesk.app.api.routes.appointments import router as appointments_router
from casedesk.app.api.routes.cases import router as cases_router
from casedesk.app.api.routes.files import router as files_router
from casedesk.app.api.routes.folders import router as folders_router
from casedesk.app.api.routes.notes import router as notes_router
from casedesk.app.api.routes.users import router as users_router
from casedesk.app.db import dispose_engine, init_db
from casedesk.app.domain.errors import CaseDeskError, CaseValidationError
from casedesk.app.seed.run import seed_from_env


logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    if raw is None:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    if not any(origin in origins for origin in ("http://localhost:5173", "http://127.0.0.1:5173")):
        logger.warning("CORS allowlist does not include local dev origins: %s", origins)
    return origins


@asynccontextmanager
async def lifespan(_: FastAPI):
    if seed_on_startup():
        init_db()
        seed_from_env()
    yield
    dispose_engine()


app = FastAPI(title="CaseDesk API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CaseDeskError)
async def _casedesk_error_handler(_: Request, exc: CaseDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed code=%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"detail": f"validation failed: {problems}", "code": CaseValidationError.code},
    )


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "internal error", "code": "internal_error"})


app.include_router(cases_router)
app.include_router(folders_router)
app.include_router(files_router)
app.include_router(notes_router)
app.include_router(users_router)
app.include_router(appointments_router)
