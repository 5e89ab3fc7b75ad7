from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from newswatch.core import get_settings
from newswatch.devserver.routers import ROUTERS
from newswatch.devserver.store import DevStore


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": str(err["loc"][-1]) if err.get("loc") else "", "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


def create_app(store: DevStore | None = None) -> FastAPI:
    """Dev backend for the auth endpoints. Run with: uvicorn newswatch.devserver.main:app"""
    settings = get_settings()
    app = FastAPI(
        title="NewsWatch Dev Auth API",
        description="Local stand-in for the NewsWatch auth endpoints.",
        version="0.1.0",
    )
    app.state.store = store or DevStore(otp_ttl_seconds=settings.otp_expire_seconds)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
