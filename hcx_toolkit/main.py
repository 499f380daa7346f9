import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.converter import router as converter_router
from .api.exchange import ProtocolError
from .api.fhir_utilities import router as fhir_utilities_router
from .api.health import router as health_router
from .api.payer import router as payer_router
from .api.provider import router as provider_router
from .api.registry import router as registry_router
from .config import get_settings
from .database import init_db
from .logging_config import configure_logging

SERVICES = {
    "converter": ("FHIR InsurancePlan Converter", [converter_router]),
    "fhir_utilities": ("FHIR Utilities", [fhir_utilities_router]),
    "payer": ("HCX Payer Stub", [payer_router, registry_router]),
    "provider": ("HCX Provider Stub", [provider_router]),
}

STUB_SERVICES = {"payer", "provider"}


def create_app(service: str) -> FastAPI:
    if service not in SERVICES:
        raise ValueError(f"Unknown service: {service}")
    settings = get_settings()
    configure_logging(settings)

    title, routers = SERVICES[service]
    app = FastAPI(title=title, version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ProtocolError)
    async def protocol_error_handler(request: Request, exc: ProtocolError):
        return JSONResponse(status_code=exc.status_code, content=exc.body)

    if service in STUB_SERVICES:

        @app.on_event("startup")
        def startup() -> None:
            init_db()

    app.include_router(health_router)
    for router in routers:
        app.include_router(router)

    return app


converter_app = create_app("converter")
fhir_app = create_app("fhir_utilities")
payer_app = create_app("payer")
provider_app = create_app("provider")
