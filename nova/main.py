from contextlib import asynccontextmanager
from fastapi import FastAPI
from .logging import setup_logging
from .config import settings
from .db import get_conn, migrate
from .api.routes import router as api_router
from .pipeline.scheduler import schedule_jobs, shutdown_scheduler

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    conn = get_conn(settings.db_path)
    try:
        migrate(conn)
    finally:
        conn.close()
    if settings.scheduler_enabled:
        schedule_jobs()
    yield
    shutdown_scheduler()

app = FastAPI(title="nova-service", lifespan=lifespan)
app.include_router(api_router)
