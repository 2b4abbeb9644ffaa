"""
PingWatch - Main Application Entry Point
"""
import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import Set
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pingwatch.config import settings
from pingwatch.database import engine, init_db
from pingwatch.routers import targets, statistics
from pingwatch.services.monitor import Monitor
from pingwatch.services.store import SqlStore, Store

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_TARGET_UUID = "38c84db2-1c79-40c6-86aa-650474f2cc88"

store = SqlStore(engine)
monitor = Monitor(store)
_reload_tasks: Set[asyncio.Task] = set()


async def create_default_data(target_store: Store) -> None:
    """Seed a localhost target so a fresh install has something to probe."""
    if not settings.SEED_DEFAULT_TARGET:
        return
    if await target_store.list_targets():
        return
    await target_store.add_target("localhost", "127.0.0.1", uuid=DEFAULT_TARGET_UUID)
    logger.info("Default localhost target created")


async def reload_monitor() -> None:
    try:
        await monitor.restart()
    except Exception as e:
        logger.error("Monitor reload failed, probing is stopped: %s", e)


def request_reload() -> asyncio.Task:
    """Restart the monitor in the background; the task is held until it finishes."""
    logger.info("SIGHUP received, reloading")
    task = asyncio.get_running_loop().create_task(reload_monitor())
    _reload_tasks.add(task)
    task.add_done_callback(_reload_tasks.discard)
    return task


def _install_reload_handler(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        loop.add_signal_handler(signal.SIGHUP, request_reload)
    except (AttributeError, NotImplementedError, RuntimeError):
        # No SIGHUP on Windows, and no handlers outside the main thread
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.DB_TYPE})")
    await init_db()
    await create_default_data(store)
    await monitor.start()

    loop = asyncio.get_running_loop()
    reload_installed = _install_reload_handler(loop)

    yield

    # Shutdown
    if reload_installed:
        loop.remove_signal_handler(signal.SIGHUP)
    await monitor.stop()
    await engine.dispose()
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)
app.state.store = store

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(targets.router)
app.include_router(statistics.router)


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "monitor": "running" if monitor.running else "stopped",
    }


def run():
    """Console entry point: serve the API and run the monitor under uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
