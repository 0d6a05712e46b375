from datetime import datetime
from pydantic import BaseModel, ConfigDict


class PushKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionIn(BaseModel):
    """Shape of the browser's PushSubscription.toJSON()."""
    endpoint: str
    expirationTime: int | None = None
    keys: PushKeys


class UnsubscribeIn(BaseModel):
    endpoint: str


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: str
    related_id: int | None = None
    is_read: bool
    created_at: datetime | None = None
