from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Tickets
# -----------------------------
class BookTicketRequest(CamelModel):
    event_id: str = Field(min_length=1)
    ticket_type: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class BookingData(CamelModel):
    event: str
    ticket_type: str
    quantity: int
    total_price: float
    booking_date: str


class BookTicketResponse(CamelModel):
    success: bool = True
    message: str
    booking_id: str
    booking_status: str
    payment_status: str
    data: BookingData


class CancelBookingResponse(CamelModel):
    success: bool = True
    message: str
    booking_id: str
    booking_status: str
    payment_status: str


class UpdateBookingStatusRequest(CamelModel):
    booking_status: str | None = None
    payment_status: str | None = None
    reason: str | None = None
    notes: str | None = None


class StatusChange(CamelModel):
    from_: str = Field(alias="from")
    to: str


class StatusLogEntryResponse(CamelModel):
    booking_status: StatusChange
    payment_status: StatusChange
    reason: str | None = None
    notes: str | None = None
    changed_by: str
    changed_at: str


class BookingSummary(CamelModel):
    id: str
    event_id: str
    event_title: str | None = None
    user_id: str
    ticket_type: str
    quantity: int
    total_price: float
    booking_status: str
    payment_status: str
    meta: dict[str, Any] = {}
    status_log: list[StatusLogEntryResponse] = []


class UpdateBookingStatusResponse(CamelModel):
    success: bool = True
    message: str
    booking: BookingSummary


class BookingListResponse(CamelModel):
    success: bool = True
    count: int
    bookings: list[BookingSummary]


class MembershipEntryResponse(CamelModel):
    booking_id: str
    event_id: str
    user_id: str
    ticket_type: str
    quantity: int
    total_price: float
    booking_status: str
    booked_at: str


class MembershipListResponse(CamelModel):
    success: bool = True
    count: int
    bookings: list[MembershipEntryResponse]


# -----------------------------
# Events
# -----------------------------
class TicketTypeCreate(CamelModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)


class EventCreateRequest(CamelModel):
    title: str = Field(min_length=1)
    organizer_id: str | None = None
    ticket_types: list[TicketTypeCreate] = Field(min_length=1)


class TicketTypeResponse(CamelModel):
    name: str
    price: float
    quantity: int
    sold: int
    remaining: int


class EventResponse(CamelModel):
    id: str
    title: str
    organizer_id: str | None = None
    status: str
    ticket_types: list[TicketTypeResponse]
    status_log: list[dict[str, Any]] = []


class EventStatusUpdateRequest(CamelModel):
    action: str


class EventEnvelope(CamelModel):
    success: bool = True
    message: str
    event: EventResponse
