from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Set

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .config import SimulationConfig
from .environment import SeededEnvironment
from .metrics import TickMetrics
from .persistence import default_save_path, save_environment
from .presets import build_environment
from .snapshot import EnvironmentSnapshot, take_snapshot
from .time_point import StaticTimePoint

logger = logging.getLogger(__name__)


class SimulationController:
    def __init__(self, config: SimulationConfig, save_dir: Optional[Path] = None):
        self.config = config
        self.environment: SeededEnvironment = build_environment(StaticTimePoint(), config)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.save_dir = save_dir or Path.cwd()
        self.running = False
        self.speed_multiplier = 1.0
        self.last_metrics: Optional[TickMetrics] = None
        self.clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.environment = build_environment(StaticTimePoint(), self.config)
            self.last_metrics = None
        await self._broadcast_snapshot()

    async def step(self) -> TickMetrics:
        async with self._lock:
            self.last_metrics = self.environment.proceed(self.config.time_step)
            interval = self.config.collect_chunks_interval
            if interval > 0 and self.environment.iteration % interval == 0:
                self.environment.collect_unused_chunks()
            return self.last_metrics

    async def save(self) -> Path:
        async with self._lock:
            return save_environment(self.environment, default_save_path(self.save_dir))

    def snapshot(self) -> EnvironmentSnapshot:
        return take_snapshot(
            self.environment.environment,
            metrics=self.last_metrics,
            seed=self.environment.rng.seed,
            config_version=self.config.config_version,
        )

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running or self.environment.bugs_count == 0:
                continue
            metrics = await self.step()
            if metrics.iteration % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def _broadcast_snapshot(self) -> None:
        if not self.clients:
            return
        payload = json.dumps(self.snapshot().to_dict())
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await client.send_text(payload)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)


app = FastAPI(title="Bugs Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    environment = controller.environment
    return JSONResponse(
        {
            "running": controller.running,
            "iteration": environment.iteration,
            "population": environment.bugs_count,
            "food": environment.food_count,
            "time_seconds": environment.now.duration_since(environment.creation_time),
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
    return JSONResponse({"running": controller.running, "iteration": controller.environment.iteration})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/save")
async def save_simulation() -> JSONResponse:
    path = await controller.save()
    return JSONResponse({"path": str(path)})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    await controller._broadcast_snapshot()
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("websocket client disconnected")
        controller.clients.discard(websocket)


def main() -> None:
    parser = argparse.ArgumentParser(description="Bugs simulation server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=args.host, port=args.port)


__all__ = ["app", "controller", "SimulationController"]
