from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities.booking import BookingStatus


class BookingSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    property_title: str
    property_image: str
    client_id: str
    client_name: str
    client_email: str
    client_phone: str
    agent_id: str
    agent_name: str = ""
    visit_date: date
    visit_time: str
    status: BookingStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class BookingListItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    property_title: str
    property_image: str
    client_name: str
    agent_name: str
    visit_date: date
    visit_time: str
    status: BookingStatus
    status_label: str


class BookingListResponseSchema(BaseModel):
    upcoming: list[BookingListItemSchema]
    past: list[BookingListItemSchema]
    generation: int
    is_stale: bool


class CreateBookingRequestSchema(BaseModel):
    property_id: str = Field(min_length=1)
    visit_date: date
    visit_time: str = Field(min_length=1)
    notes: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None


class RescheduleRequestSchema(BaseModel):
    visit_date: date
    visit_time: str = Field(min_length=1)


class NotificationIntentSchema(BaseModel):
    kind: str
    booking_id: str
    recipient_id: str


class TransitionResponseSchema(BaseModel):
    booking: BookingSchema
    previous_status: BookingStatus
    notification: NotificationIntentSchema | None = None


class RescheduleResponseSchema(BaseModel):
    cancelled: BookingSchema
    replacement: BookingSchema
    notification: NotificationIntentSchema | None = None


class ChatCardSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    state: str
    status_label: str
    property_title: str | None = None
    property_image: str | None = None
    client_name: str | None = None
    visit_date: date | None = None
    visit_time: str | None = None
    can_confirm: bool = False
    can_cancel: bool = False


class NotificationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    title: str
    message: str
    read: bool
    data: dict[str, str] | None = None
    created_at: datetime


class NotificationListResponseSchema(BaseModel):
    notifications: list[NotificationSchema]
    unread_count: int
