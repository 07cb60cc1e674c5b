from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from app.domain.entities.booking import Booking


class ActorRole(str, Enum):
    CLIENT = "client"
    AGENT = "agent"


@dataclass(frozen=True)
class ActorFilter:
    column: str  # "client_id" | "agent_id"
    value: str

    def __post_init__(self) -> None:
        if self.column not in ("client_id", "agent_id"):
            raise ValueError(f"Unsupported actor filter column: {self.column}")
        if not self.value:
            raise ValueError("Actor filter value must not be empty")

    def matches(self, booking: Booking) -> bool:
        return getattr(booking, self.column) == self.value

    def to_postgrest(self) -> str:
        return f"eq.{self.value}"

    def __str__(self) -> str:
        return f"{self.column}={self.value}"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @staticmethod
    def from_headers(actor_id: str, role: str, name: str | None = None, email: str | None = None, phone: str | None = None) -> "Actor":
        return Actor(
            id=(actor_id or "").strip(),
            role=ActorRole(str(role or "").strip().lower()),
            name=(name or "").strip() or None,
            email=(email or "").strip() or None,
            phone=(phone or "").strip() or None,
        )

    def booking_filter(self) -> ActorFilter:
        if self.role == ActorRole.AGENT:
            return ActorFilter(column="agent_id", value=self.id)
        return ActorFilter(column="client_id", value=self.id)
