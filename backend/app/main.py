import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from app.api.analytics import router as analytics_router
from app.api.forum import router as forum_router
from app.api.pages import router as pages_router
from app.api.places import router as places_router
from app.api.submissions import router as submissions_router
from app.config import PROJECT_ROOT, settings
from app.database import SessionLocal, create_tables, engine
from app.dependencies import get_places_cache
from app.errors import ApiError, CompanyDataError, TemplateMissingError
from app.services.analytics import (
    VISITOR_COOKIE,
    VISITOR_COOKIE_MAX_AGE,
    is_valid_visitor_id,
    record_page_view,
    should_track,
)
from app.services.company_store import CompanyStore
from app.worker import start_prefetch

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    places = get_places_cache()
    logger.info(
        "Places provider: %s (live %s)",
        settings.resolved_places_provider,
        "enabled" if places.live_enabled else "disabled",
    )
    prefetch_task = start_prefetch(settings, places, CompanyStore(settings.companies_path))
    yield
    if prefetch_task is not None:
        prefetch_task.cancel()


app = FastAPI(
    title="MX Chinese Directory",
    description="Business directory, contact form and community forum",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.session_factory = SessionLocal

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(submissions_router)
app.include_router(forum_router)
app.include_router(analytics_router)
app.include_router(places_router)
app.include_router(pages_router)

app.mount(
    "/image/place-photos",
    StaticFiles(directory=settings.place_photo_dir, check_dir=False),
    name="place-photos",
)
app.mount("/image", StaticFiles(directory=PROJECT_ROOT / "image", check_dir=False), name="image")
app.mount("/assets", StaticFiles(directory=settings.site_dir / "assets", check_dir=False), name="assets")


@app.middleware("http")
async def track_page_views(request: Request, call_next):
    if not settings.analytics_enabled or not should_track(request.method, request.url.path):
        return await call_next(request)

    visitor_id = request.cookies.get(VISITOR_COOKIE)
    new_visitor = not is_valid_visitor_id(visitor_id)
    if new_visitor:
        visitor_id = str(uuid.uuid4())

    response = await call_next(request)

    if new_visitor:
        forwarded_proto = request.headers.get("x-forwarded-proto", "")
        response.set_cookie(
            VISITOR_COOKIE,
            visitor_id,
            max_age=VISITOR_COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
            httponly=True,
            secure=request.url.scheme == "https" or "https" in forwarded_proto,
        )
    if 200 <= response.status_code < 400:
        await record_page_view(
            request.app.state.session_factory,
            visitor_id=visitor_id,
            path=request.url.path,
            referrer=request.headers.get("referer", ""),
            user_agent=request.headers.get("user-agent", ""),
            ip=request.client.host if request.client else "",
        )
    return response


@app.get("/api/health")
async def health() -> dict:
    db_status = "ok"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"
    return {"ok": db_status == "ok", "db": db_status}


@app.exception_handler(ApiError)
async def api_error_handler(_, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "message": exc.message})


@app.exception_handler(TemplateMissingError)
async def template_missing_handler(_, exc: TemplateMissingError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=500)


@app.exception_handler(CompanyDataError)
async def company_data_handler(_, exc: CompanyDataError) -> PlainTextResponse:
    logger.error("Companies data unusable: %s", exc)
    return PlainTextResponse(exc.message, status_code=500)


@app.exception_handler(Exception)
async def unhandled_exception_handler(_, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": "internal_server_error",
            "message": str(exc),
            "mode": settings.environment,
        },
    )
