from app.domain.entities.booking import BookingStatus


STATUS_LABELS: dict[BookingStatus, str] = {
    BookingStatus.PENDING: "Pending Confirmation",
    BookingStatus.CONFIRMED: "Booking Confirmed",
    BookingStatus.CANCELLED: "Booking Cancelled",
    BookingStatus.COMPLETED: "Viewing Completed",
}

UNAVAILABLE_LABEL = "This booking is no longer available"
LOADING_LABEL = "Loading booking"


def status_label(status: BookingStatus) -> str:
    return STATUS_LABELS[status]
