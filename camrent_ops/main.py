import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CAMRENT_API_BASE_URL, FRONTEND_URL, LOG_LEVEL
from .domain.console.controller import ConsoleRegistry
from .domain.console.router import router as console_router
from .domain.contracts.preview_store import PreviewStore
from .domain.contracts.router import router as previews_router
from .errors import InvalidRequest, WorkflowError, WorkflowResult
from .gateway import BackendGateway

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(gateway: Optional[BackendGateway] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Booking console starting up...")
        backend = gateway or BackendGateway()
        previews = PreviewStore()
        app.state.gateway = backend
        app.state.previews = previews
        app.state.consoles = ConsoleRegistry(backend, previews)
        logger.info(f"Backend API: {backend.base_url}")

        yield

        logger.info("Booking console shutting down...")
        app.state.consoles.close_all()
        if previews.live_count:
            logger.warning(f"⚠️ {previews.live_count} previews still live at shutdown")
        await backend.aclose()

    app = FastAPI(title="CamRent Booking Console", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Reject malformed console requests with the workflow error envelope
        """
        errors = jsonable_encoder(exc.errors())
        logger.warning(f"⚠️ Invalid request for {request.url.path}: {errors}")
        result = WorkflowResult.failure(InvalidRequest())
        return JSONResponse(
            status_code=422,
            content={**result.model_dump(mode="json"), "detail": errors},
        )

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        logger.error(f"❌ {request.method} {request.url.path} - {exc.code}: {exc.message}")
        result = WorkflowResult.failure(exc)
        return JSONResponse(status_code=exc.status_code, content=result.model_dump(mode="json"))

    # CORS Configuration
    allowed_origins = [FRONTEND_URL, "http://localhost:5173", "http://localhost:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # Routes
    app.include_router(console_router)
    app.include_router(previews_router)

    @app.get("/")
    def root():
        return {"message": "CamRent booking console is running", "backend": CAMRENT_API_BASE_URL}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
