"""FastAPI application factory shared by the services."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .database import Base, engine
from .errors import ReservationNotFound, RoomNotFound, StoreUnavailable
from .logging_middleware import add_audit_middleware
from .rate_limit import apply_rate_limiter

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


async def _store_unavailable(_: Request, exc: StoreUnavailable) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


async def _room_not_found(_: Request, exc: RoomNotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Room not found"})


async def _reservation_not_found(_: Request, exc: ReservationNotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Reservation not found"})


def create_app(title: str, service_name: str) -> FastAPI:
    fastapi_app = FastAPI(title=title, version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, service_name)
    fastapi_app.add_exception_handler(StoreUnavailable, _store_unavailable)
    fastapi_app.add_exception_handler(RoomNotFound, _room_not_found)
    fastapi_app.add_exception_handler(ReservationNotFound, _reservation_not_found)

    @fastapi_app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok", "service": service_name}

    return fastapi_app
