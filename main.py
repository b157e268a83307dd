import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Settings, configure_logging, get_settings
from contact_store import ContactStore
from db_models import ContactResponse, FinalResponse, IdentifyRequest
from db_setup import get_db_connection, init_db, transaction
from errors import StoreError
from reconciler import identify as reconcile

logger = logging.getLogger(__name__)


def identify_contact(settings: Settings, email: Optional[str] = None, phone: Optional[str] = None) -> ContactResponse:
    """Run one reconciliation as a single transaction on a fresh connection."""
    conn = get_db_connection(settings.db_path, settings.db_timeout)
    try:
        with transaction(conn):
            return reconcile(ContactStore(conn), email, phone)
    finally:
        conn.close()


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request body"
        return JSONResponse(status_code=400, content={"detail": message})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store failure on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=503,
            content={"detail": exc.message, "code": exc.code},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(level=settings.log_level)
        init_db(settings.db_path)
        yield

    app = FastAPI(
        title="Bitespeed Contact Reconciliation API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {"message": "Bitespeed API is up"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/identify", response_model=FinalResponse)
    def identify(request: IdentifyRequest):
        email = request.email
        phone = request.phoneNumber

        if not email and not phone:
            raise HTTPException(status_code=400, detail="Either email or phoneNumber must be provided")

        contact = identify_contact(settings, email, phone)
        return FinalResponse(contact=contact)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)
