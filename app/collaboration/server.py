"""
Real-time collaboration relay

WebSocket connections are handed to pycrdt-websocket, which speaks the Yjs
sync and awareness protocol; the room is the URL path. Run with
`python -m collaboration.server` from the app directory.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pycrdt.websocket import WebsocketServer

from collaboration.registry import DocumentRegistry
from config import settings
from database import SessionLocal
from utils.auth import decode_access_token

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT = "default-doc"
UNAUTHORIZED_CLOSE_CODE = 4401

registry = DocumentRegistry(
    cleanup_delay=settings.collab_cleanup_seconds,
    session_factory=SessionLocal
)
websocket_server = WebsocketServer(auto_clean_rooms=True, log=logger)


class StarletteChannel:
    """Adapts a Starlette WebSocket to the channel interface pycrdt-websocket serves"""

    def __init__(self, websocket: WebSocket, path: str):
        self._websocket = websocket
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self.recv()
        except WebSocketDisconnect:
            raise StopAsyncIteration()

    async def send(self, message: bytes):
        await self._websocket.send_bytes(message)

    async def recv(self) -> bytes:
        return await self._websocket.receive_bytes()


def resolve_identity(params) -> dict:
    """
    User identity from the `token` JWT or the `user`/`name`/`color` query
    parameters; anyone else gets a generated anonymous id
    """
    token = params.get("token")
    if token:
        username = decode_access_token(token).username
        return {"id": username, "name": username, "color": params.get("color")}

    user_id = params.get("user") or f"anon-{uuid.uuid4().hex[:8]}"
    return {"id": user_id, "name": params.get("name"), "color": params.get("color")}


async def log_stats_periodically(interval: float):
    while True:
        await asyncio.sleep(interval)
        logger.info(f"Server stats: {registry.get_server_stats()}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with websocket_server:
        stats_task = asyncio.create_task(
            log_stats_periodically(settings.collab_stats_interval_seconds)
        )
        logger.info(f"Collaboration WebSocket server running on port {settings.collab_port}")

        yield

        logger.info("Shutting down collaboration server...")
        stats_task.cancel()
        try:
            await stats_task
        except asyncio.CancelledError:
            pass
    logger.info("Collaboration server shut down gracefully")


app = FastAPI(title="BlogCraft AI Collaboration Server", lifespan=lifespan)


@app.get("/stats")
async def get_stats():
    return registry.get_server_stats()


@app.websocket("/{doc_name:path}")
async def collaborate(websocket: WebSocket, doc_name: str):
    doc_name = doc_name or DEFAULT_DOCUMENT

    try:
        identity = resolve_identity(websocket.query_params)
    except HTTPException:
        logger.warning(f"Rejected connection to {doc_name}: invalid token")
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    await websocket.accept()
    logger.info(f"New WebSocket connection established for {doc_name}")

    room = await websocket_server.get_room(doc_name)
    registry.get_document(doc_name, room.ydoc)
    registry.add_user(doc_name, identity["id"], identity)

    try:
        await websocket_server.serve(StarletteChannel(websocket, doc_name))
    finally:
        registry.remove_user(doc_name, identity["id"])
        logger.info(f"WebSocket connection closed for {doc_name}")


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.collab_host,
        port=settings.collab_port,
        log_level=settings.log_level.lower()
    )
