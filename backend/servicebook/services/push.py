# backend/servicebook/services/push.py
import json
import logging

from pywebpush import webpush, WebPushException

from ..config import settings
from ..database import SessionLocal
from ..models.notification import PushSubscription
from .realtime import hub

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/pwa-192x192.png"


def push_configured() -> bool:
    return bool(settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY)


def build_payload(title: str, body: str, data: dict | None = None) -> str:
    return json.dumps(
        {
            "notification": {
                "title": title,
                "body": body,
                "icon": DEFAULT_ICON,
                "badge": DEFAULT_ICON,
                "vibrate": [100, 50, 100],
                "data": data or {},
            }
        }
    )


def send_push_to_user(user_id: int, title: str, body: str, data: dict | None = None,
                      session_factory=SessionLocal) -> int:
    """
    Web Push to every subscription of the user. Skipped when the user has a
    live websocket (they already got the in-app event) or VAPID is not set.
    Subscriptions the push service reports as gone (404/410) are deleted.
    Returns the number of successful deliveries.
    """
    if hub.is_online(user_id):
        logger.info("User %s is online, skipping push notification", user_id)
        return 0
    if not push_configured():
        logger.info("VAPID keys not configured, skipping push to user %s", user_id)
        return 0

    payload = build_payload(title, body, data)
    sent = 0
    db = session_factory()
    try:
        subs = db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
        if not subs:
            logger.info("No push subscriptions found for user %s", user_id)
            return 0

        for sub in subs:
            try:
                webpush(
                    subscription_info={
                        "endpoint": sub.endpoint,
                        "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
                    },
                    data=payload,
                    vapid_private_key=settings.VAPID_PRIVATE_KEY,
                    vapid_claims={"sub": settings.VAPID_SUBJECT},
                )
                sent += 1
            except WebPushException as e:
                status = getattr(e.response, "status_code", None)
                logger.error("Error sending push to subscription %s: %s", sub.id, e)
                if status in (404, 410):
                    logger.info("Removing invalid subscription %s", sub.id)
                    db.delete(sub)
        db.commit()
    finally:
        db.close()
    return sent
