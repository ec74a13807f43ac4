"""WebSocket stream of message change events."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from medbridge.services.realtime import ChangeFeed, Subscription, get_change_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations/{conversation_id}")


async def _close_on_client_disconnect(websocket: WebSocket, feed: ChangeFeed, subscription: Subscription) -> None:
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        feed.unsubscribe(subscription)


@router.websocket("/realtime")
async def realtime(
    websocket: WebSocket,
    conversation_id: str,
    feed: ChangeFeed = Depends(get_change_feed),
) -> None:
    """Push ``{"type", "data"}`` envelopes for every insert, update and delete.

    The first frame is a ``status`` envelope once the subscription is live.
    """

    await websocket.accept()
    subscription = feed.subscribe(conversation_id)
    watcher = asyncio.create_task(_close_on_client_disconnect(websocket, feed, subscription))
    try:
        await websocket.send_json({"type": "status", "data": {"status": "subscribed"}})
        async for event in subscription:
            await websocket.send_json(event.to_envelope())
    except WebSocketDisconnect:
        pass
    finally:
        watcher.cancel()
        feed.unsubscribe(subscription)
        logger.info("realtime.client_disconnected conversation_id=%s", conversation_id)
