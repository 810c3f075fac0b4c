from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from eventify.infrastructure.db.session import SessionLocal
from eventify.application.booking_service import BookingService
from eventify.application.booking_status_service import BookingStatusService
from eventify.application.event_service import EventService
from eventify.api.schemas.schemas import (
    BookTicketRequest,
    BookTicketResponse,
    BookingData,
    BookingListResponse,
    BookingSummary,
    CancelBookingResponse,
    EventCreateRequest,
    EventEnvelope,
    EventResponse,
    EventStatusUpdateRequest,
    MembershipEntryResponse,
    MembershipListResponse,
    StatusChange,
    StatusLogEntryResponse,
    TicketTypeResponse,
    UpdateBookingStatusRequest,
    UpdateBookingStatusResponse,
)
from eventify.domain.exceptions import (
    EventifyError,
    InsufficientInventoryError,
    InvalidStateTransitionError,
    NotFoundError,
    TransactionConflictError,
    UnauthorizedError,
    ValidationError,
)
from eventify.domain.inventory import ActorRole, InventoryPolicy, remaining_quantity
from eventify.infrastructure import settings
from eventify.infrastructure.db.models import BookedEventEntry, Booking, BookingStatusLog, Event
from eventify.infrastructure.notifications.email_dispatcher import EmailNotificationDispatcher
from eventify.infrastructure.repositories.booked_events_repository import BookedEventsRepository
from eventify.infrastructure.repositories.booking_repository import BookingRepository
from eventify.infrastructure.repositories.event_repository import EventRepository


router = APIRouter()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole
    name: str | None = None


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_notifier():
    return EmailNotificationDispatcher()


def get_inventory_policy() -> InventoryPolicy:
    return settings.default_inventory_policy()


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_actor_name: str | None = Header(default=None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        role = ActorRole(x_actor_role.upper())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown actor role",
        ) from exc
    return Actor(id=x_actor_id, role=role, name=x_actor_name)


def require_roles(*roles: ActorRole):
    def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not allowed to perform this action",
            )
        return actor

    return dependency


def _http_error(exc: EventifyError) -> HTTPException:
    if isinstance(exc, (ValidationError, InsufficientInventoryError)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, UnauthorizedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidStateTransitionError, TransactionConflictError)):
        code = status.HTTP_409_CONFLICT
    else:
        logger.error("Unhandled domain error: %s", exc)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _booking_summary(
    booking: Booking,
    status_log: list[BookingStatusLog] | None = None,
) -> BookingSummary:
    log = [
        StatusLogEntryResponse(
            booking_status=StatusChange(
                from_=entry.booking_status_from.value,
                to=entry.booking_status_to.value,
            ),
            payment_status=StatusChange(
                from_=entry.payment_status_from.value,
                to=entry.payment_status_to.value,
            ),
            reason=entry.reason,
            notes=entry.notes,
            changed_by=entry.changed_by,
            changed_at=entry.changed_at.isoformat(),
        )
        for entry in status_log or []
    ]
    return BookingSummary(
        id=booking.id,
        event_id=booking.event_id,
        event_title=booking.event.title if booking.event else None,
        user_id=booking.user_id,
        ticket_type=booking.ticket_type,
        quantity=booking.quantity,
        total_price=float(booking.total_price),
        booking_status=booking.booking_status.value,
        payment_status=booking.payment_status.value,
        meta=booking.meta or {},
        status_log=log,
    )


def _membership_entry(entry: BookedEventEntry) -> MembershipEntryResponse:
    return MembershipEntryResponse(
        booking_id=entry.booking_id,
        event_id=entry.event_id,
        user_id=entry.user_id,
        ticket_type=entry.ticket_type,
        quantity=entry.quantity,
        total_price=float(entry.total_price),
        booking_status=entry.booking_status.value,
        booked_at=entry.booked_at.isoformat(),
    )


def _event_response(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        organizer_id=event.organizer_id,
        status=event.status.value,
        ticket_types=[
            TicketTypeResponse(
                name=ticket.name,
                price=float(ticket.price),
                quantity=ticket.quantity,
                sold=ticket.sold,
                remaining=remaining_quantity(ticket),
            )
            for ticket in event.ticket_types
        ],
        status_log=event.status_log or [],
    )


@router.get("/health")
def health():
    return {"success": True, "message": "Eventify Booking Service is running"}


# -----------------------------
# Tickets
# -----------------------------
@router.post(
    "/ticket/book-ticket",
    response_model=BookTicketResponse,
    status_code=status.HTTP_201_CREATED,
)
def book_ticket(
    request: BookTicketRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles(ActorRole.USER)),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    policy: InventoryPolicy = Depends(get_inventory_policy),
):
    service = BookingService(
        db,
        notifier=notifier,
        schedule=background_tasks.add_task,
        policy=policy,
    )
    try:
        booking = service.create_booking(
            user_id=actor.id,
            event_id=request.event_id,
            ticket_type=request.ticket_type,
            quantity=request.quantity,
        )
    except EventifyError as exc:
        raise _http_error(exc) from exc

    return BookTicketResponse(
        message=f"Ticket booked successfully. Payment status: {booking.payment_status.value}",
        booking_id=booking.id,
        booking_status=booking.booking_status.value,
        payment_status=booking.payment_status.value,
        data=BookingData(
            event=booking.event.title,
            ticket_type=booking.ticket_type,
            quantity=booking.quantity,
            total_price=float(booking.total_price),
            booking_date=_utc_now_iso(),
        ),
    )


@router.post("/ticket/cancel-booking/{booking_id}", response_model=CancelBookingResponse)
def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    policy: InventoryPolicy = Depends(get_inventory_policy),
):
    service = BookingService(
        db,
        notifier=notifier,
        schedule=background_tasks.add_task,
        policy=policy,
    )
    try:
        booking = service.cancel_booking(
            booking_id=booking_id,
            actor_id=actor.id,
            actor_role=actor.role,
            actor_name=actor.name,
        )
    except EventifyError as exc:
        raise _http_error(exc) from exc

    return CancelBookingResponse(
        message="Booking cancelled",
        booking_id=booking.id,
        booking_status=booking.booking_status.value,
        payment_status=booking.payment_status.value,
    )


@router.patch(
    "/super-admin/ticket/update-booking-status/{booking_id}",
    response_model=UpdateBookingStatusResponse,
)
def update_booking_status(
    booking_id: str,
    request: UpdateBookingStatusRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles(ActorRole.SUPERADMIN, ActorRole.ORGANIZER)),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    policy: InventoryPolicy = Depends(get_inventory_policy),
):
    service = BookingStatusService(
        db,
        notifier=notifier,
        schedule=background_tasks.add_task,
        policy=policy,
    )
    try:
        booking = service.update_status(
            booking_id=booking_id,
            actor_id=actor.id,
            booking_status=request.booking_status,
            payment_status=request.payment_status,
            reason=request.reason,
            notes=request.notes,
            actor_name=actor.name,
        )
    except EventifyError as exc:
        raise _http_error(exc) from exc

    return UpdateBookingStatusResponse(
        message="Booking status updated",
        booking=_booking_summary(
            booking,
            status_log=BookingRepository(db).get_status_log(booking.id),
        ),
    )


@router.get("/super-admin/ticket/get-all-bookings", response_model=BookingListResponse)
def get_all_bookings(
    actor: Actor = Depends(require_roles(ActorRole.SUPERADMIN)),
    db: Session = Depends(get_db),
):
    bookings = BookingRepository(db).list_all()
    return BookingListResponse(
        count=len(bookings),
        bookings=[_booking_summary(booking) for booking in bookings],
    )


@router.get("/user/my-bookings", response_model=MembershipListResponse)
def my_bookings(
    actor: Actor = Depends(require_roles(ActorRole.USER)),
    db: Session = Depends(get_db),
):
    entries = BookedEventsRepository(db).list_for_holder(ActorRole.USER, actor.id)
    return MembershipListResponse(
        count=len(entries),
        bookings=[_membership_entry(entry) for entry in entries],
    )


@router.get("/organizer/event-bookings", response_model=MembershipListResponse)
def organizer_event_bookings(
    actor: Actor = Depends(require_roles(ActorRole.ORGANIZER)),
    db: Session = Depends(get_db),
):
    entries = BookedEventsRepository(db).list_for_holder(ActorRole.ORGANIZER, actor.id)
    return MembershipListResponse(
        count=len(entries),
        bookings=[_membership_entry(entry) for entry in entries],
    )


# -----------------------------
# Events
# -----------------------------
@router.post(
    "/super-admin/event",
    response_model=EventEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_event(
    request: EventCreateRequest,
    actor: Actor = Depends(require_roles(ActorRole.SUPERADMIN)),
    db: Session = Depends(get_db),
):
    try:
        event = EventService(db).create_event(
            title=request.title,
            organizer_id=request.organizer_id,
            ticket_types=[item.model_dump() for item in request.ticket_types],
        )
    except EventifyError as exc:
        raise _http_error(exc) from exc

    return EventEnvelope(message="Event created", event=_event_response(event))


@router.patch(
    "/super-admin/event/update-event-status/{event_id}",
    response_model=EventEnvelope,
)
def update_event_status(
    event_id: str,
    request: EventStatusUpdateRequest,
    actor: Actor = Depends(require_roles(ActorRole.SUPERADMIN)),
    db: Session = Depends(get_db),
):
    try:
        event = EventService(db).update_event_status(
            event_id=event_id,
            action=request.action.upper(),
            actor_id=actor.id,
        )
    except EventifyError as exc:
        raise _http_error(exc) from exc

    return EventEnvelope(
        message=f"Event status updated to {event.status.value}",
        event=_event_response(event),
    )


@router.get("/event/{event_id}", response_model=EventEnvelope)
def get_event(
    event_id: str,
    db: Session = Depends(get_db),
):
    event = EventRepository(db).get_by_id(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return EventEnvelope(message="Event fetched", event=_event_response(event))
