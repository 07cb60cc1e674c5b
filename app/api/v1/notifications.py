from fastapi import APIRouter, Depends, HTTPException

from app.api.v1.dependencies import get_actor
from app.api.v1.schemas import NotificationListResponseSchema, NotificationSchema
from app.domain.entities.actor import Actor
from app.infrastructure.notifications.in_app_dispatcher import InAppNotificationDispatcher
from app.wiring.dependencies import get_notification_dispatcher

router = APIRouter(prefix="/api/v1/notifications")


@router.get("", response_model=NotificationListResponseSchema)
def list_notifications(
    actor: Actor = Depends(get_actor),
    inbox: InAppNotificationDispatcher = Depends(get_notification_dispatcher),
):
    return NotificationListResponseSchema(
        notifications=[NotificationSchema.model_validate(n) for n in inbox.list_for(actor.id)],
        unread_count=inbox.unread_count(actor.id),
    )


@router.post("/{notification_id}/read", status_code=204)
def mark_notification_read(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    inbox: InAppNotificationDispatcher = Depends(get_notification_dispatcher),
):
    if not inbox.mark_read(actor.id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")


@router.post("/read-all")
def mark_all_notifications_read(
    actor: Actor = Depends(get_actor),
    inbox: InAppNotificationDispatcher = Depends(get_notification_dispatcher),
) -> dict[str, int]:
    return {"updated": inbox.mark_all_read(actor.id)}


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    inbox: InAppNotificationDispatcher = Depends(get_notification_dispatcher),
):
    if not inbox.delete(actor.id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
