from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from childguard.db import SessionLocal
from childguard.models.subject import Guardian
from childguard.services.fanout import subject_channel, user_channel

router = APIRouter(tags=["realtime"])


def _channels_for(guardian_id: int) -> list[str] | None:
    with SessionLocal() as db:
        guardian = db.get(Guardian, guardian_id)
        if guardian is None:
            return None
        return [user_channel(guardian.id)] + [subject_channel(s.id) for s in guardian.subjects]


@router.websocket("/ws/{guardian_id}")
async def stream(ws: WebSocket, guardian_id: int):
    """Live alert feed for one guardian and every child they watch."""
    channels = await run_in_threadpool(_channels_for, guardian_id)
    if channels is None:
        await ws.close(code=4404)
        return

    hub = ws.app.state.fanout
    joined = await hub.connect(ws, channels)
    try:
        await ws.send_json({"event": "ready", "channels": joined})
        while True:
            # Clients only listen; reading detects disconnects
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(ws)
