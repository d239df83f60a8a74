import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from zenpanel.config import settings
from zenpanel.database import Base, SessionLocal, engine
from zenpanel.routers import admin, dashboard, inbounds, nodes, public, stats, users
from zenpanel.services.node_client import NodeClient
from zenpanel.services.traffic_collector import Counters, collect_once

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parent.parent


async def _stats_loop(interval: int):
    client = NodeClient()
    last_values: Counters = {}
    while True:
        await asyncio.sleep(interval)
        try:
            db = SessionLocal()
            try:
                last_values = await collect_once(db, client, last_values)
            finally:
                db.close()
        except Exception:
            logging.exception("Traffic collection failed")


def _run_migrations() -> None:
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    try:
        command.upgrade(alembic_cfg, "head")
    except SQLAlchemyError as e:
        # tables created earlier by create_all() without an alembic_version row
        if "already exists" in str(getattr(e, "orig", e)).lower():
            command.stamp(alembic_cfg, "head")
        else:
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        _run_migrations()
    except Exception:
        logging.exception("Alembic upgrade failed")
    Base.metadata.create_all(bind=engine)
    task = None
    if settings.stats_poll_interval > 0:
        task = asyncio.create_task(_stats_loop(settings.stats_poll_interval))
    yield
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Zen Panel", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(stats.router)
app.include_router(admin.router)
app.include_router(users.router)
app.include_router(nodes.router)
app.include_router(inbounds.router)
app.include_router(dashboard.router)
app.include_router(public.router)


@app.get("/")
def root():
    return {"service": "zenpanel", "docs": "/docs"}
