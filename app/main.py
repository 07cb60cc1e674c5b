import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.v1.bookings import router as bookings_router
from app.api.v1.notifications import router as notifications_router
from app.core.config import settings
from app.wiring.dependencies import close_clients, get_session_registry

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "actor_id", "status", "generation", "actor_filter", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await get_session_registry().close_all()
    await close_clients()


app = FastAPI(title="Property Viewing Bookings", version="1.0.0", lifespan=lifespan)

app.include_router(bookings_router, tags=["bookings"])
app.include_router(notifications_router, tags=["notifications"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
