from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every shape exchanged with the backend (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserType(StrEnum):
    PLAYER = "player"
    OWNER = "owner"
    ADMIN = "admin"


class ApprovalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BookingStatus(StrEnum):
    PENDING = "pending"  # created, payment or owner action outstanding
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"  # checked in at the turf
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class User(ApiModel):
    id: str | None = Field(default=None, alias="_id")
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str | None = None
    user_type: UserType = UserType.PLAYER
    avatar: str | None = None
    business_name: str | None = None
    business_address: str | None = None
    business_phone: str | None = None
    turf_location: str | None = None
    turf_count: int | None = None
    admin_approval_status: ApprovalStatus | None = None
    is_email_verified: bool = False
    is_approved_by_admin: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Coordinates(ApiModel):
    lat: float = 0
    lng: float = 0


class Location(ApiModel):
    address: str = ""
    coordinates: Coordinates | None = None


class TimeSlot(ApiModel):
    """A bookable interval on a given day, boundaries as ``HH:MM``."""

    start_time: str
    end_time: str
    price: float | None = None

    @property
    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"


class DaySchedule(ApiModel):
    is_open: bool = True
    slots: list[TimeSlot] = Field(default_factory=list)


class Turf(ApiModel):
    id: str = Field(alias="_id")
    name: str = ""
    location: Location | None = None
    price_per_hour: float | None = None
    images: list[str] = Field(default_factory=list)
    sport: str = ""
    description: str = ""
    amenities: list[str] = Field(default_factory=list)
    available_slots: dict[str, DaySchedule] = Field(default_factory=dict)
    slot_duration: int = 60
    advance_booking_days: int = 30
    is_approved: bool = False
    pending_changes: dict[str, Any] | None = None
    changes_approval_status: str | None = None


class CustomerInfo(ApiModel):
    name: str = ""
    phone: str = ""
    email: str | None = None


class Review(ApiModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""


class Booking(ApiModel):
    id: str = Field(alias="_id")
    turf_id: Turf | str | None = None
    customer_info: CustomerInfo | None = None
    booking_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: str | None = None
    total_amount: float | None = None
    booking_code: str | None = None
    booking_type: str | None = None
    method: str | None = None
    reviews: list[Review] = Field(default_factory=list)

    @field_validator("booking_date", mode="before")
    @classmethod
    def keep_calendar_date(cls, v: Any) -> Any:
        # Backend sends either "2026-06-01" or a midnight ISO datetime
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v

    @property
    def turf_ref(self) -> str | None:
        if isinstance(self.turf_id, Turf):
            return self.turf_id.id
        return self.turf_id


class PaymentOrder(ApiModel):
    order_id: str | None = None
    amount: int | None = None  # paise
    currency: str | None = None
    key_id: str | None = None


class CheckoutResult(BaseModel):
    """What the Razorpay checkout hands back after a successful payment."""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentVerification(ApiModel):
    success: bool = False
    message: str | None = None
    booking: Booking | None = None


class AuthResult(ApiModel):
    success: bool = True
    token: str | None = None
    user: User | None = None
    message: str | None = None


class ChatReply(ApiModel):
    reply: str = "Sorry, I couldn't process that."
    intent: str = "general"
    suggestions: list[str] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = None


class Match(ApiModel):
    id: str = Field(alias="_id")
    title: str = ""
    status: str = "scheduled"
    share_code: str | None = None
    teams: list[dict[str, Any]] = Field(default_factory=list)
