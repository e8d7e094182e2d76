# ccscraper/web/ccscraper_wsr.py
from __future__ import annotations

import contextlib

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .ccscraper_log import broker

router = APIRouter()


@router.websocket("/ws/logs")
async def logs_ws(websocket: WebSocket):
    await websocket.accept()
    q = await broker.connect()
    try:
        # Let the client know the stream is live
        await websocket.send_text('{"type":"hello","msg":"log-stream-ready"}')
        while True:
            msg = await q.get()
            await websocket.send_text(msg)
    except WebSocketDisconnect:
        pass
    finally:
        await broker.disconnect(q)
        with contextlib.suppress(RuntimeError):
            await websocket.close()
