from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.auth.dependencies import get_current_user
from clinic_api.core.errors import StorageError
from clinic_api.database import get_db
from clinic_api.models.user import User
from clinic_api.services import notification_service

router = APIRouter(tags=['notifications'])


class NotificationResponse(BaseModel):
    id: int
    type: str
    message: str
    read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


@router.get('')
def list_notifications(
    unread_only: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        notifications = notification_service.list_notifications(db, current_user.id, unread_only=unread_only)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {
        'success': True,
        'data': {'notifications': [NotificationResponse.model_validate(item) for item in notifications]},
    }


@router.patch('/{notification_id}/read')
def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        notification = notification_service.mark_as_read(db, notification_id, current_user.id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError() from exc

    return {'success': True, 'data': {'notification': NotificationResponse.model_validate(notification)}}
