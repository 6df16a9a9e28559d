# linkdle/main.py
# Start the backend using uvicorn linkdle.main:app --reload --host 0.0.0.0
import asyncio
import logging
import logging.config
import logging.handlers
import json
import pathlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.routing import APIRoute

from linkdle.core.config import settings
from linkdle.api import game as game_router
from linkdle.api import monitoring as monitoring_router
from linkdle.api import words as words_router
from linkdle.db.base import Base # Registers every table on Base.metadata
from linkdle.db.session import SessionLocal, engine
from linkdle.services.cache_store import SqlCacheStore
from linkdle.services.game_service import GameService

_queue_handler_instance: Optional[logging.handlers.QueueHandler] = None # Module-level variable
_persist_task: Optional[asyncio.Task] = None
_prune_task: Optional[asyncio.Task] = None

LOGGING_CONFIG_FILE = pathlib.Path(__file__).parent / "logging_config.json"

def load_logging_config(config_file: pathlib.Path = LOGGING_CONFIG_FILE, log_dir: pathlib.Path = settings.LOG_DIR) -> dict:
    """Reads the dictConfig and points every file handler into `log_dir`."""
    with open(config_file) as f_in:
        config = json.load(f_in)
    log_dir.mkdir(parents=True, exist_ok=True)
    for handler in config.get("handlers", {}).values():
        if "filename" in handler:
            handler["filename"] = str(log_dir / pathlib.Path(handler["filename"]).name)
    return config

def configure_logging_from_file():
    """Loads logging configuration from the JSON file and identifies the QueueHandler."""
    global _queue_handler_instance
    config_file = LOGGING_CONFIG_FILE
    try:
        config = load_logging_config(config_file)

        logging.config.dictConfig(config)

        # Find the QueueHandler instance to start/stop its listener later
        for handler in logging.getLogger().handlers:
            if isinstance(handler, logging.handlers.QueueHandler):
                _queue_handler_instance = handler
                break

        if not _queue_handler_instance:
            logging.getLogger("linkdle.main.logging_setup_check").error(
                "QueueHandler not found in root logger. Off-thread logging will not work as intended."
            )
    except FileNotFoundError:
        print(f"ERROR: Logging configuration file not found at {config_file}. Falling back to basic stdout logging.")
        logging.basicConfig(level=logging.INFO, format='%(levelname)-8s [%(name)s] %(message)s')
    except json.JSONDecodeError as e:
        print(f"ERROR: Failed to parse logging configuration file {config_file}: {e}. Falling back to basic stdout logging.")
        logging.basicConfig(level=logging.INFO, format='%(levelname)-8s [%(name)s] %(message)s')
    except Exception as e:
        print(f"ERROR: Failed to configure logging from file: {e}. Falling back to basic stdout logging.")
        logging.basicConfig(level=logging.INFO, format='%(levelname)-8s [%(name)s] %(message)s')


# Configure logging when the module is loaded. Listener is stopped by lifespan.
configure_logging_from_file()
logger = logging.getLogger("linkdle.main") # Logger for this module

def create_tables():
    Base.metadata.create_all(bind=engine)


async def persist_caches_task(service: GameService, interval_seconds: int = 300):
    """Periodically snapshots the caches so a restart does not start cold."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            saved = await service.persist_caches_async()
            logger.info(f"Periodic cache snapshot stored {saved} caches.")
        except Exception as e:
            logger.error(f"Error in cache persistence task: {e}", exc_info=True)


async def prune_sessions_task(service: GameService, interval_seconds: int = 600):
    """Periodically forgets sessions that have been idle for too long."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            service.prune_sessions()
        except Exception as e:
            logger.error(f"Error in session pruning task: {e}", exc_info=True)


async def _cancel_task(task: Optional[asyncio.Task], name: str) -> None:
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info(f"{name} task successfully cancelled.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _persist_task, _prune_task
    if _queue_handler_instance and hasattr(_queue_handler_instance, 'listener'):
        try:
            _queue_handler_instance.listener.start()
            logger.info("Logging QueueListener started successfully via lifespan.")
        except Exception as e:
            logger.error(f"Failed to start QueueListener in lifespan: {e}", exc_info=True)
    else:
        logger.warning("QueueHandler or its listener not found during startup; off-thread logging might not be active.")

    logger.info("Application startup sequence initiated...")
    create_tables()

    service = GameService.from_settings(store=SqlCacheStore(SessionLocal))
    restored = service.restore_caches()
    logger.info(f"Restored {restored} cache entries from the database.")
    app.state.game_service = service

    _persist_task = asyncio.create_task(persist_caches_task(service, settings.CACHE_PERSIST_INTERVAL_SECONDS))
    _prune_task = asyncio.create_task(prune_sessions_task(service, settings.SESSION_PRUNE_INTERVAL_SECONDS))
    yield  # This is where the application will run

    logger.info("Application shutdown sequence initiated...")
    await _cancel_task(_persist_task, "Cache persistence")
    await _cancel_task(_prune_task, "Session pruning")
    await service.persist_caches_async()

    if _queue_handler_instance and hasattr(_queue_handler_instance, 'listener') and _queue_handler_instance.listener:
        try:
            _queue_handler_instance.listener.stop()
        except Exception as e:
            logger.error(f"Failed to stop QueueListener gracefully in lifespan: {e}", exc_info=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Include Routers
app.include_router(game_router.router, prefix=settings.API_V1_STR, tags=["Game"])
app.include_router(words_router.router, prefix=settings.API_V1_STR + "/words", tags=["Words"])
app.include_router(monitoring_router.router, prefix=settings.API_V1_STR + "/monitoring", tags=["Monitoring"])

logger.info("--- FastAPI Registered Routes ---")
for route in app.routes:
    if isinstance(route, APIRoute):
        logger.info(f"Path: {route.path}, Methods: {route.methods}, Name: {route.name}")
logger.info("--- End Registered Routes ---")


@app.get(settings.API_V1_STR + "/health", tags=["Health Check"])
async def health_check():
    return {"status": "healthy", "project": settings.PROJECT_NAME}
