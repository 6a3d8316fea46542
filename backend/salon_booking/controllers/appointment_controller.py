"""
Appointment controller for handling HTTP requests following SOLID principles.

This controller:
- Handles HTTP concerns only (Single Responsibility)
- Depends on service abstractions (Dependency Inversion)
- Maps typed booking outcomes and domain errors to status codes

Business rejections come back as outcomes: 409 for an overlap, 422 for the
other reasons. Request problems are 400, unknown or foreign resources 404,
illegal transitions 409, storage failures 503.
"""

import logging

from flask import Blueprint, current_app, request
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from salon_booking.core.api_utils import api_response
from salon_booking.core.auth_decorators import current_owner_id
from salon_booking.core.csrf_config import csrf
from salon_booking.core.exceptions import (
    AppointmentNotReschedulableError,
    InvalidStatusTransitionError,
    NotFoundError,
    StorageConflictError,
)
from salon_booking.core.limiter_config import limiter
from salon_booking.domain.conflict_guard import RejectionReason
from salon_booking.repositories.appointment_repo import AppointmentRepository
from salon_booking.repositories.business_repo import BusinessHoursRepository
from salon_booking.repositories.professional_repo import ProfessionalRepository
from salon_booking.repositories.service_repo import ServiceRepository
from salon_booking.schemas.dtos import (
    AppointmentListQuery,
    AvailabilityQuery,
    BookingRequest,
    RescheduleRequest,
    StatusChangeRequest,
)
from salon_booking.services.appointment_query_service import AppointmentQueryService
from salon_booking.services.availability_service import AvailabilityService
from salon_booking.services.booking_service import BookingCoordinator, BookingOutcome
from salon_booking.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

appointment_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _session_factory():
    return current_app.extensions["session_factory"]


def _coordinator() -> BookingCoordinator:
    return BookingCoordinator(
        _session_factory(),
        current_app.extensions["clock"],
        current_app.config["APP_TZ"],
    )


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _outcome_response(outcome: BookingOutcome, success_message: str, status_code: int):
    if outcome.ok:
        return api_response(
            True, success_message, outcome.appointment.to_dict(), status_code
        )
    if outcome.reason == RejectionReason.OVERLAPS_EXISTING_APPOINTMENT:
        status = 409
    else:
        status = 422
    return api_response(
        False, outcome.message, {"reason": outcome.reason.value}, status
    )


# =====================================================
# ERROR HANDLERS
# =====================================================


@appointment_bp.errorhandler(ValueError)
def handle_bad_request(error):
    return api_response(False, str(error), None, 400)


@appointment_bp.errorhandler(NotFoundError)
def handle_not_found(error):
    return api_response(False, f"{error.resource} não encontrado", None, 404)


@appointment_bp.errorhandler(InvalidStatusTransitionError)
def handle_invalid_transition(error):
    return api_response(
        False,
        "Transição de status não permitida",
        {"current": error.current, "requested": error.requested},
        409,
    )


@appointment_bp.errorhandler(AppointmentNotReschedulableError)
def handle_not_reschedulable(error):
    return api_response(
        False,
        "Apenas agendamentos marcados podem ser remarcados",
        {"status": error.status},
        409,
    )


@appointment_bp.errorhandler(StorageConflictError)
@appointment_bp.errorhandler(SQLAlchemyError)
def handle_storage_error(error):
    logger.error(
        "Storage error while handling appointment request",
        extra={"context": {"path": request.path, "error": str(error)}},
        exc_info=error,
    )
    return api_response(
        False, "Serviço temporariamente indisponível, tente novamente", None, 503
    )


# =====================================================
# ROUTES
# =====================================================


@appointment_bp.route("/availability", methods=["GET"])
@limiter.limit("120 per minute")
@login_required
def get_availability():
    """List bookable slots for a professional, date and service."""
    query = AvailabilityQuery.from_args(request.args)
    owner_id = current_owner_id()

    with _session_factory()() as db:
        service = AvailabilityService(
            calendar_source=CalendarService(
                ProfessionalRepository(db),
                BusinessHoursRepository(db),
                current_app.config["APP_TZ"],
            ),
            duration_source=ServiceRepository(db),
            window_source=AppointmentRepository(db),
            slot_granularity_minutes=current_app.config["SLOT_GRANULARITY_MINUTES"],
            clock=current_app.extensions["clock"],
        )
        slots = service.get_available_slots(
            owner_id, query.professional_id, query.on_date, query.service_id
        )

    return api_response(
        True,
        "Horários disponíveis",
        {
            "professional_id": query.professional_id,
            "service_id": query.service_id,
            "date": query.on_date.isoformat(),
            "slots": [slot.to_dict() for slot in slots],
        },
    )


@appointment_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@csrf.exempt  # JSON API - bearer token authentication
@login_required
def book_appointment():
    """Book an appointment; the slot is re-validated atomically."""
    booking_request = BookingRequest.from_json(_json_body())
    outcome = _coordinator().book(current_owner_id(), booking_request)
    return _outcome_response(outcome, "Agendamento criado com sucesso", 201)


@appointment_bp.route("/<int:appointment_id>/reschedule", methods=["PUT"])
@limiter.limit("30 per minute")
@csrf.exempt  # JSON API - bearer token authentication
@login_required
def reschedule_appointment(appointment_id: int):
    """Move a scheduled appointment to a new start."""
    reschedule_request = RescheduleRequest.from_json(_json_body())
    outcome = _coordinator().reschedule(
        current_owner_id(), appointment_id, reschedule_request.start
    )
    return _outcome_response(outcome, "Agendamento remarcado com sucesso", 200)


@appointment_bp.route("/<int:appointment_id>/status", methods=["PATCH"])
@limiter.limit("30 per minute")
@csrf.exempt  # JSON API - bearer token authentication
@login_required
def change_status(appointment_id: int):
    """Complete, cancel or mark an appointment as no-show."""
    status_request = StatusChangeRequest.from_json(_json_body())
    appointment = _coordinator().update_status(
        current_owner_id(), appointment_id, status_request.status
    )
    return api_response(True, "Status atualizado", appointment.to_dict())


@appointment_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@login_required
def list_appointments():
    """List the caller's appointments, optionally filtered."""
    query = AppointmentListQuery.from_args(request.args)
    with _session_factory()() as db:
        appointments = AppointmentQueryService(
            AppointmentRepository(db)
        ).list_appointments(
            current_owner_id(),
            professional_id=query.professional_id,
            start=query.start,
            end=query.end,
        )
    return api_response(
        True, "Agendamentos", [appointment.to_dict() for appointment in appointments]
    )


@appointment_bp.route("/<int:appointment_id>", methods=["GET"])
@limiter.limit("100 per minute")
@login_required
def get_appointment(appointment_id: int):
    with _session_factory()() as db:
        appointment = AppointmentQueryService(
            AppointmentRepository(db)
        ).get_appointment(current_owner_id(), appointment_id)
    return api_response(True, "Agendamento", appointment.to_dict())


@appointment_bp.route("/<int:appointment_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@csrf.exempt  # JSON API - bearer token authentication
@login_required
def delete_appointment(appointment_id: int):
    """Hard delete an appointment."""
    _coordinator().delete(current_owner_id(), appointment_id)
    return api_response(True, "Agendamento excluído", {"id": appointment_id})
