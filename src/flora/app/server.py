from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from contextlib import asynccontextmanager, suppress
from dataclasses import asdict, dataclass
from typing import AsyncIterator, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, default_scene
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_MAX_QUEUED_SNAPSHOTS = 256


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    """Runs the world on an asyncio loop and fans snapshots out to websocket clients."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.simulation)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=_MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
            logger.info("Simulation loop started (dt=%.4fs)", self.config.time_step)
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        task = self._broadcast_task
        self._broadcast_task = None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def set_pointer(self, x: float, y: float, touch_only: bool = False) -> None:
        async with self._lock:
            self.world.set_pointer(x, y, touch_only=touch_only)

    async def set_gravity(self, x: float, y: float) -> None:
        async with self._lock:
            self.world.set_gravity(x, y)

    async def advance(self) -> None:
        async with self._lock:
            self.world.step(self.tick)
            self.tick += 1
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "entities": snapshot.entities,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        async with self._lock:
            queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.warning("Dropping disconnected websocket client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)

    async def handle_message(self, message: str) -> None:
        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed websocket message")
            return
        if not isinstance(payload, dict):
            return
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
        elif kind == "pointer":
            await self.set_pointer(
                float(payload.get("x", 0.0)),
                float(payload.get("y", 0.0)),
                touch_only=bool(payload.get("touch", False)),
            )


controller = SimulationController(AppConfig(simulation=default_scene()))


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await controller.start()
    try:
        yield
    finally:
        await controller.shutdown()


app = FastAPI(title="Flora Steering Simulation", lifespan=_lifespan)


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.world.registry),
            "agents": len(controller.world.agents),
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/pointer")
async def set_pointer(payload: dict) -> JSONResponse:
    x = float(payload.get("x", 0.0))
    y = float(payload.get("y", 0.0))
    touch_only = bool(payload.get("touch", False))
    await controller.set_pointer(x, y, touch_only=touch_only)
    return JSONResponse({"x": x, "y": y, "touch": touch_only})


@app.post("/api/gravity")
async def set_gravity(payload: dict) -> JSONResponse:
    x = float(payload.get("x", 0.0))
    y = float(payload.get("y", 0.0))
    await controller.set_gravity(x, y)
    return JSONResponse({"x": x, "y": y})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            await controller.handle_message(await websocket.receive_text())
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
