"""WebSocket service around the interaction engine.

A pose source (sensor bridge) streams frames into ``/ws/frames``; each
frame runs one engine tick and the tick result is sent back. Gesture and
mode events are pushed to every ``/ws`` subscriber. ``POST /api/command``
is the asynchronous channel (voice, scripts). Ticks and commands run in
worker threads, since desktop backends block; the engine lock keeps them
from interleaving.

Usage:
    posecontrol serve
    # or
    uvicorn posecontrol.server:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

from posecontrol import __version__
from posecontrol.desktop import RecordingDesktop
from posecontrol.engine import InteractionEngine, TickResult
from posecontrol.frame import PoseFrame
from posecontrol.metrics import MetricsCollector
from posecontrol.motion import ReleaseAction

logger = logging.getLogger("posecontrol.server")

app = FastAPI(title="posecontrol", version=__version__)


class ServerState:
    def __init__(self):
        self.clients: set[WebSocket] = set()
        self.sources: set[WebSocket] = set()
        self.engine: Optional[InteractionEngine] = None
        self.metrics = MetricsCollector()
        self.last_gesture: Optional[dict] = None

    def get_engine(self) -> InteractionEngine:
        if self.engine is None:
            logger.warning("No engine configured; using an in-memory desktop")
            self.engine = InteractionEngine(RecordingDesktop())
        return self.engine


state = ServerState()


def configure(engine: InteractionEngine):
    """Install the engine the service drives."""
    state.engine = engine


def record_tick(result: TickResult):
    state.metrics.record_frame(result.latency_ms / 1000.0)
    for event in result.events:
        state.metrics.record_gesture(event.name)
    for change in result.mode_changes:
        state.metrics.record_mode(change.current.value)
    for command in result.commands:
        state.metrics.record_command(command)


def event_messages(result: TickResult) -> list[dict]:
    """Subscriber messages for the notable parts of a tick."""
    now = time.time()
    messages = []
    for event in result.events:
        messages.append({
            "type": "gesture",
            "gesture": event.name,
            "hand": event.hand.value if event.hand else None,
            "timestamp": now,
        })
    for change in result.mode_changes:
        messages.append({
            "type": "mode",
            "from": change.previous.value,
            "to": change.current.value,
            "trigger": change.trigger,
            "timestamp": now,
        })
    if result.release not in (None, ReleaseAction.NONE):
        messages.append({"type": "release", "action": result.release.value, "timestamp": now})
    return messages


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    engine = state.get_engine()
    stats = engine.stats
    return {
        "mode": stats.mode,
        "signal_hand": stats.signal_hand,
        "active_hand": stats.active_hand,
        "frames": stats.total_frames,
        "total_gestures": stats.total_gestures,
        "last_gesture": state.last_gesture,
        "clients": len(state.clients),
        "sources": len(state.sources),
        "profiler": stats.profiler_summary,
        "slow_ticks": engine.profiler.over_budget,
    }


@app.get("/api/gestures")
async def list_gestures():
    engine = state.get_engine()
    return {
        "gestures": [d.to_dict() for d in engine.recognizer.definitions],
        "actions": engine.actions.triggers,
    }


@app.post("/api/command")
async def api_command(command: dict[str, Any] = Body(...)):
    try:
        result = await asyncio.to_thread(state.get_engine().apply_command, command)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await broadcast({"type": "command", "command": command, "result": result, "timestamp": time.time()})
    return result


@app.get("/metrics")
async def metrics():
    state.metrics.set_connections(len(state.clients) + len(state.sources))
    return PlainTextResponse(
        state.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- WebSocket: frame ingest ---

@app.websocket("/ws/frames")
async def frames_endpoint(ws: WebSocket):
    await ws.accept()
    state.sources.add(ws)
    logger.info("Pose source connected (%d total)", len(state.sources))
    engine = state.get_engine()
    intrinsics = engine.config.projection.intrinsics()

    try:
        while True:
            msg = await ws.receive_text()
            try:
                data = json.loads(msg)
                if not isinstance(data, dict):
                    raise ValueError("frame must be a JSON object")
                frame = PoseFrame.from_dict(data, intrinsics=intrinsics)
            except (ValueError, TypeError, AttributeError) as e:
                state.metrics.record_rejected()
                logger.warning("Rejected frame: %s", e)
                await ws.send_json({"type": "error", "message": str(e)})
                continue

            # the tick issues blocking desktop calls; keep them off the loop
            result = await asyncio.to_thread(engine.process_frame, frame)
            record_tick(result)
            await ws.send_json(result.to_dict())

            messages = event_messages(result)
            if messages:
                state.last_gesture = next((m for m in messages if m["type"] == "gesture"), state.last_gesture)
                for message in messages:
                    await broadcast(message)
    except WebSocketDisconnect:
        pass
    finally:
        state.sources.discard(ws)
        logger.info("Pose source disconnected (%d total)", len(state.sources))


# --- WebSocket: event subscribers ---

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    logger.info("Client connected (%d total)", len(state.clients))
    engine = state.get_engine()

    try:
        await ws.send_json({
            "type": "connected",
            "mode": engine.mode.value,
            "gestures": [d.name for d in engine.recognizer.definitions],
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
                data = json.loads(msg)
                if data.get("type") == "ping":
                    await ws.send_json({"type": "pong", "server_time": time.time()})
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
            except (ValueError, AttributeError):
                await ws.send_json({"type": "error", "message": "expected a JSON object"})
    except WebSocketDisconnect:
        pass
    finally:
        state.clients.discard(ws)
        logger.info("Client disconnected (%d total)", len(state.clients))


async def broadcast(message: dict):
    """Send message to all event subscribers."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in list(state.clients):
        try:
            await ws.send_text(payload)
        except Exception:
            dead.add(ws)
    state.clients -= dead
