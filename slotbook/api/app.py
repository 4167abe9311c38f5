"""
FastAPI application exposing slot search and booking management.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..adapters.memory_store import InMemoryStore
from ..config import AppConfig
from ..domain.exceptions import (
    InternalError,
    NotFoundError,
    SlotbookError,
    SlotUnavailableError,
    ValidationError,
)
from ..domain.slot_calculator import SlotCalculator
from ..schemas import (
    BookingAction,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    MessageResponse,
    SlotsResponse,
)
from ..services.availability import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (SlotUnavailableError, 409),
    (InternalError, 500),
)


def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/slots", response_model=SlotsResponse)
def list_slots(
    provider_id: Optional[str] = Query(None, alias="providerId"),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    date: Optional[str] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    if not provider_id or not service_id or not date:
        raise ValidationError("Missing required parameters: providerId, serviceId, date")

    result = service.find_slots(provider_id, service_id, date)
    return result.to_payload()


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(
    body: BookingCreate,
    service: AvailabilityService = Depends(get_availability_service),
):
    booking = service.create_booking(
        provider_id=body.provider_id,
        service_id=body.service_id,
        client_id=body.client_id,
        start=body.start,
        note=body.note,
    )
    return {"booking": booking.to_payload()}


@router.get("/bookings", response_model=BookingListResponse)
def list_bookings(
    provider_id: Optional[str] = Query(None, alias="providerId"),
    client_id: Optional[str] = Query(None, alias="clientId"),
    service: AvailabilityService = Depends(get_availability_service),
):
    bookings = service.list_bookings(provider_id=provider_id, client_id=client_id)
    return {"bookings": [b.to_payload() for b in bookings]}


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    body: BookingAction,
    service: AvailabilityService = Depends(get_availability_service),
):
    if body.action != "cancel":
        raise ValidationError('Invalid action. Only "cancel" is supported')

    booking = service.cancel_booking(booking_id)
    return {"booking": booking.to_payload()}


@router.delete("/bookings/{booking_id}", response_model=MessageResponse)
def delete_booking(
    booking_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    service.delete_booking(booking_id)
    return {"message": "Booking deleted successfully"}


async def _handle_domain_error(request: Request, exc: SlotbookError) -> JSONResponse:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 500

    if status_code == 500:
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse({"error": str(exc)}, status_code=status_code)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": [str(item) for item in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse({"error": "Validation failed", "details": details}, status_code=400)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(service: AvailabilityService) -> FastAPI:
    """Build the API around an ``AvailabilityService``."""
    app = FastAPI(
        title="slotbook",
        version=__version__,
        description="Bookable time slots for providers and services",
    )
    app.state.availability = service

    app.add_exception_handler(SlotbookError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(router)
    return app


def create_app_from_config(config: AppConfig, base_dir: Path | None = None) -> FastAPI:
    """Build the API with an in-memory store seeded from the configured data file."""
    data_path = config.resolve_data_file(base_dir or Path.cwd())
    store = InMemoryStore.load_from_file(data_path)
    service = AvailabilityService(
        settings_store=store,
        service_catalog=store,
        booking_store=store,
        slot_calculator=SlotCalculator(step_minutes=config.step_minutes),
    )
    return create_app(service)
