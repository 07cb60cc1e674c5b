from fastapi import Depends, Header, HTTPException

from app.application.use_cases.booking_session import BookingSession, SessionRegistry
from app.domain.entities.actor import Actor
from app.wiring.dependencies import get_session_registry


def get_actor(
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
    x_actor_name: str | None = Header(None),
    x_actor_email: str | None = Header(None),
    x_actor_phone: str | None = Header(None),
) -> Actor:
    if not (x_actor_id and x_actor_id.strip()):
        raise HTTPException(status_code=401, detail="Missing actor identity")
    try:
        return Actor.from_headers(x_actor_id, x_actor_role or "client", x_actor_name, x_actor_email, x_actor_phone)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown actor role: {x_actor_role}")


async def get_booking_session(
    actor: Actor = Depends(get_actor),
    registry: SessionRegistry = Depends(get_session_registry),
) -> BookingSession:
    return await registry.get_or_start(actor)
