import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..database import SessionLocal, get_db
from ..deps import get_current_user, user_from_token
from ..models.notification import Notification, PushSubscription
from ..models.user import Role, User
from ..schemas.notification import NotificationOut, PushSubscriptionIn, UnsubscribeIn
from ..services.realtime import hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid-public-key")
def vapid_public_key():
    if not settings.VAPID_PUBLIC_KEY:
        raise HTTPException(404, "Push notifications are not configured")
    return {"public_key": settings.VAPID_PUBLIC_KEY}


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
def subscribe(payload: PushSubscriptionIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    # endpoints are unique: a browser re-subscribing moves to the current user
    sub = db.query(PushSubscription).filter(PushSubscription.endpoint == payload.endpoint).first()
    if sub is None:
        sub = PushSubscription(endpoint=payload.endpoint)
        db.add(sub)
    sub.user_id = me.id
    sub.expiration_time = payload.expirationTime
    sub.p256dh = payload.keys.p256dh
    sub.auth = payload.keys.auth
    db.commit()
    db.refresh(sub)
    logger.info("User %s subscribed to push notifications (%s)", me.id, sub.id)
    return {"ok": True, "id": sub.id}


@router.delete("/unsubscribe")
def unsubscribe(payload: UnsubscribeIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    deleted = (
        db.query(PushSubscription)
        .filter(PushSubscription.endpoint == payload.endpoint, PushSubscription.user_id == me.id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        raise HTTPException(404, "Subscription not found")
    logger.info("User %s unsubscribed from push notifications", me.id)
    return {"ok": True}


@router.get("", response_model=List[NotificationOut])
def my_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    q = db.query(Notification).filter(Notification.user_id == me.id)
    if unread_only:
        q = q.filter(Notification.is_read == False)  # noqa: E712
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    note = db.get(Notification, notification_id)
    if not note or note.user_id != me.id:
        raise HTTPException(404, "Notification not found")
    note.is_read = True
    db.commit()
    db.refresh(note)
    return note


def _ws_user(token: str) -> User | None:
    db = SessionLocal()
    try:
        return user_from_token(token, db)
    finally:
        db.close()


@router.websocket("/ws")
async def notifications_ws(ws: WebSocket, token: str = Query(...)):
    # blocking DB lookup stays off the event loop
    user = await run_in_threadpool(_ws_user, token)
    if user is None:
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await hub.connect(ws, user.id, is_admin=user.role == Role.ADMIN)
    try:
        while True:
            # client pings keep the socket alive; nothing else is expected inbound
            msg = await ws.receive_text()
            if msg == "ping":
                await ws.send_json({"event": "pong", "data": {}})
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(ws, user.id)
