from sqlalchemy.orm import Session

from clinic_api.core.errors import NotFoundError
from clinic_api.models.notification import Notification

APPOINTMENT_BOOKED = 'appointment_booked'
APPOINTMENT_STATUS_CHANGED = 'appointment_status_changed'


def create_notification(db: Session, user_id: int, notification_type: str, message: str) -> Notification:
    notification = Notification(user_id=user_id, type=notification_type, message=message, read=False)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_notifications(db: Session, user_id: int, unread_only: bool = False) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_as_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if notification is None:
        raise NotFoundError('Notification not found')

    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification
