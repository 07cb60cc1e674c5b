from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.v1.dependencies import get_actor, get_booking_session
from app.api.v1.errors import to_http_error
from app.api.v1.schemas import (
    BookingListItemSchema,
    BookingListResponseSchema,
    BookingSchema,
    ChatCardSchema,
    CreateBookingRequestSchema,
    NotificationIntentSchema,
    RescheduleRequestSchema,
    RescheduleResponseSchema,
    TransitionResponseSchema,
)
from app.application.exceptions import BookingError
from app.application.use_cases.booking_session import BookingSession, SessionRegistry
from app.application.use_cases.booking_transitions import TransitionResult
from app.domain.entities.actor import Actor
from app.domain.entities.booking import BookingRequest, BookingStatus
from app.domain.entities.events import NotificationIntent
from app.wiring.dependencies import get_session_registry

router = APIRouter(prefix="/api/v1")


def _intent_schema(intent: NotificationIntent | None) -> NotificationIntentSchema | None:
    if intent is None:
        return None
    return NotificationIntentSchema(kind=intent.kind, booking_id=intent.booking_id, recipient_id=intent.recipient_id)


def _transition_response(result: TransitionResult) -> TransitionResponseSchema:
    return TransitionResponseSchema(
        booking=BookingSchema.model_validate(result.booking),
        previous_status=result.event.previous_status,
        notification=_intent_schema(result.intent),
    )


@router.get("/bookings", response_model=BookingListResponseSchema)
async def list_bookings(
    status: BookingStatus | None = Query(None),
    refresh: bool = Query(False),
    session: BookingSession = Depends(get_booking_session),
):
    if refresh:
        try:
            await session.refresh()
        except BookingError as e:
            raise to_http_error(e)

    view = session.booking_list(status=status)
    return BookingListResponseSchema(
        upcoming=[BookingListItemSchema.model_validate(item) for item in view.upcoming],
        past=[BookingListItemSchema.model_validate(item) for item in view.past],
        generation=view.generation,
        is_stale=view.is_stale,
    )


@router.post("/bookings", response_model=BookingSchema, status_code=201)
async def create_booking(
    req: CreateBookingRequestSchema,
    session: BookingSession = Depends(get_booking_session),
):
    try:
        booking = await session.create(
            BookingRequest(
                property_id=req.property_id,
                visit_date=req.visit_date,
                visit_time=req.visit_time,
                notes=req.notes,
                client_name=req.client_name,
                client_email=req.client_email,
                client_phone=req.client_phone,
            )
        )
    except BookingError as e:
        raise to_http_error(e)
    return BookingSchema.model_validate(booking)


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
async def get_booking(booking_id: str, session: BookingSession = Depends(get_booking_session)):
    booking = session.snapshot().find(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": f"Booking not found: {booking_id}"})
    return BookingSchema.model_validate(booking)


@router.get("/bookings/{booking_id}/card", response_model=ChatCardSchema)
async def get_chat_card(booking_id: str, session: BookingSession = Depends(get_booking_session)):
    return ChatCardSchema.model_validate(session.chat_card(booking_id))


@router.post("/bookings/{booking_id}/confirm", response_model=TransitionResponseSchema)
async def confirm_booking(booking_id: str, session: BookingSession = Depends(get_booking_session)):
    try:
        result = await session.confirm(booking_id)
    except BookingError as e:
        raise to_http_error(e)
    return _transition_response(result)


@router.post("/bookings/{booking_id}/cancel", response_model=TransitionResponseSchema)
async def cancel_booking(booking_id: str, session: BookingSession = Depends(get_booking_session)):
    try:
        result = await session.cancel(booking_id)
    except BookingError as e:
        raise to_http_error(e)
    return _transition_response(result)


@router.post("/bookings/{booking_id}/reschedule", response_model=RescheduleResponseSchema)
async def reschedule_booking(
    booking_id: str,
    req: RescheduleRequestSchema,
    session: BookingSession = Depends(get_booking_session),
):
    try:
        result = await session.reschedule(booking_id, req.visit_date, req.visit_time)
    except BookingError as e:
        raise to_http_error(e)
    return RescheduleResponseSchema(
        cancelled=BookingSchema.model_validate(result.cancelled),
        replacement=BookingSchema.model_validate(result.replacement),
        notification=_intent_schema(result.intent),
    )


@router.post("/session/resume", status_code=204)
async def resume_session(session: BookingSession = Depends(get_booking_session)):
    await session.resume()


@router.delete("/session", status_code=204)
async def end_session(
    actor: Actor = Depends(get_actor),
    registry: SessionRegistry = Depends(get_session_registry),
):
    await registry.end(actor.id)
