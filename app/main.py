import tracemalloc
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.core.logging import configure_logging
from app.api.demo import router as demo_router
from app.dependencies import get_debugger
from routing.middleware import DebuggerMiddleware

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.trace_memory and not tracemalloc.is_tracing():
        tracemalloc.start()
    debugger = get_debugger()
    if not debugger.installed:
        debugger.install()
    yield

def create_app() -> FastAPI:
    """Build the demo application with the debugger middleware in front."""
    app = FastAPI(title=settings.service_name, lifespan=lifespan)

    app.add_middleware(DebuggerMiddleware, debugger=get_debugger())
    app.include_router(demo_router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
            "mode": get_debugger().mode.value,
        }

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
