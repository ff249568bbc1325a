from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.core.config import settings
from server.core.worker import init_worker, stop_scheduler
from server.api.routers import ledger_router, worker_router

from cookie_ledger import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    # Startup
    try:
        init_worker()
    except Exception as e:
        print(f"Warning: Failed to start worker: {e}")

    yield  # Application runs here

    # Shutdown
    stop_scheduler()


app = FastAPI(title="Troop Cookie Ledger", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "version": __version__}


app.include_router(ledger_router)
app.include_router(worker_router)
