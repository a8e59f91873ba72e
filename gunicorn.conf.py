import asyncio
import os

from spacebook.config import settings

bind = f"0.0.0.0:{os.environ.get('PORT', 8000)}"

# Booking locks are per process; the row lock and the storage overlap guard
# serialize reservations across workers
workers = int(os.environ.get("WEB_CONCURRENCY", 2))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.environ.get("GUNICORN_TIMEOUT", 30))
graceful_timeout = 20

# Recycle workers periodically
max_requests = 1000
max_requests_jitter = 50

loglevel = settings.log_level.lower()
accesslog = "-"
errorlog = "-"

proc_name = "spacebook-api"
wsgi_app = "spacebook.main:app"


async def _prepare_database():
    from spacebook import database
    from spacebook.catalog.service import WorkspaceService

    engine = database.build_engine(settings.database_url)
    try:
        if settings.create_tables_on_startup:
            await database.create_tables(engine)
        if settings.seed_defaults_on_startup:
            await WorkspaceService(database.build_session_factory(engine)).seed_defaults()
    finally:
        await engine.dispose()


def on_starting(server):
    """Prepare the schema once in the master; forked workers inherit these settings"""
    asyncio.run(_prepare_database())
    settings.create_tables_on_startup = False
    settings.seed_defaults_on_startup = False
