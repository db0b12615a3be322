import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from ..dependencies import get_change_feed
from ..security import TOKEN_COOKIE, decode_token
from ..services.live import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/tasks/changes")
async def task_changes(websocket: WebSocket, feed: ChangeFeed = Depends(get_change_feed)):
    """Push the caller's task row changes as JSON messages."""
    token = websocket.query_params.get("token") or websocket.cookies.get(TOKEN_COOKIE)
    token_data = decode_token(token) if token else None
    if not token_data or not token_data.user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()

    def on_event(event: ChangeEvent) -> None:
        # publish() may run on a threadpool worker
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def pump() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json(event.to_dict())

    unsubscribe = feed.subscribe(token_data.user_id, on_event)
    await websocket.accept()
    logger.info("Live subscriber connected user=%s", token_data.user_id)
    sender = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        for outcome in await asyncio.gather(sender, return_exceptions=True):
            if isinstance(outcome, Exception):
                logger.warning("Live push failed user=%s: %s", token_data.user_id, outcome)
        unsubscribe()
        logger.info("Live subscriber gone user=%s", token_data.user_id)
