"""
Progress stream server.

A small FastAPI app, built once at startup, exposing:
- GET  /enrichment-progress  server-sent events, one frame per snapshot
- POST /stop-server          schedules a graceful shutdown

It is served by uvicorn inside the enrichment event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import AsyncIterator, Iterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from matchenricher import __version__
from matchenricher.core.config import ServerConfig
from matchenricher.core.logging import json_dumps
from matchenricher.core.progress import ProgressBroadcaster, ProgressSnapshot, SnapshotQueue


logger = logging.getLogger(__name__)

STOP_DELAY_SECONDS = (1.0, 6.0)


def format_event(snapshot: ProgressSnapshot) -> str:
    """Frame a snapshot as one server-sent event."""
    return f"data: {json_dumps(snapshot.to_event())}\n\n"


async def stream_progress(broadcaster: ProgressBroadcaster) -> AsyncIterator[str]:
    """Yield SSE frames for one client until the run completes.

    A client that disconnects cancels the generator; the finally block
    unsubscribes it.
    """
    queue = SnapshotQueue()
    unsubscribe = broadcaster.subscribe(queue)
    try:
        async for snapshot in queue:
            yield format_event(snapshot)
    finally:
        unsubscribe()


def create_app(
    broadcaster: ProgressBroadcaster,
    *,
    stop_event: asyncio.Event | None = None,
    progress_route: str = "/enrichment-progress",
    stop_route: str = "/stop-server",
) -> FastAPI:
    """Build the progress app.

    Args:
        broadcaster: Source of progress snapshots
        stop_event: Set when a client asks the server to stop
        progress_route: Path of the event stream
        stop_route: Path of the stop endpoint
    """
    app = FastAPI(
        title="MatchEnricher progress",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.broadcaster = broadcaster
    app.state.stop_event = stop_event or asyncio.Event()

    @app.get(progress_route)
    async def enrichment_progress() -> StreamingResponse:
        return StreamingResponse(
            stream_progress(broadcaster),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.post(stop_route)
    async def stop_server() -> dict[str, object]:
        delay = random.uniform(*STOP_DELAY_SECONDS)
        asyncio.get_running_loop().call_later(delay, app.state.stop_event.set)
        logger.info(f"Stop requested, shutting down in {delay:.1f}s")
        return {"success": True, "data": f"Server will be stopped in {delay:.1f} seconds"}

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the shutdown guard."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ProgressServer:
    """Runs the progress app alongside the enrichment run.

    Usage:
        server = ProgressServer.from_config(config.server, broadcaster)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(
        self,
        app: FastAPI,
        *,
        host: str = "127.0.0.1",
        port: int = 9090,
    ):
        self.app = app
        self.host = host
        self.port = port
        self._server = _EmbeddedServer(uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="warning",
            lifespan="off",
            timeout_graceful_shutdown=5,
        ))
        self._task: asyncio.Task | None = None
        self._watcher: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: ServerConfig, broadcaster: ProgressBroadcaster) -> ProgressServer:
        app = create_app(
            broadcaster,
            progress_route=config.progress_route,
            stop_route=config.stop_route,
        )
        return cls(app, host=config.host, port=config.port)

    @property
    def stop_event(self) -> asyncio.Event:
        return self.app.state.stop_event

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    async def start(self) -> None:
        """Start serving and wait until the socket is bound."""
        self._task = asyncio.create_task(self._server.serve(), name="progress_server")
        while not self._server.started:
            if self._task.done():
                # Startup failed; surface the error
                await self._task
                raise RuntimeError(f"Progress server failed to start on {self.url}")
            await asyncio.sleep(0.05)
        self._watcher = asyncio.create_task(self._exit_on_stop(), name="progress_server_stop")
        logger.info(f"SSE server started at {self.url}")

    async def _exit_on_stop(self) -> None:
        await self.stop_event.wait()
        self._server.should_exit = True

    async def wait_for_stop(self) -> None:
        """Block until a client calls the stop route."""
        await self.stop_event.wait()

    async def stop(self) -> None:
        """Shut the server down."""
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        if self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
        logger.info("Server stopped successfully.")
