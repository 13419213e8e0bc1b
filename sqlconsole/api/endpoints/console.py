import logging
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from sqlconsole.core.console.executor import QueryExecutor
from sqlconsole.core.console.session import (
    ChannelClosed,
    Frame,
    RequestDecodeError,
    SessionConfig,
    SessionLoop,
)
from sqlconsole.core.console.store import Store
from sqlconsole.core.database import get_session_config, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Console"])

store_dep = Annotated[Store, Depends(get_store)]
config_dep = Annotated[SessionConfig, Depends(get_session_config)]


class WebSocketChannel:
    """Adapts a Starlette websocket to the session's channel contract."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def receive(self) -> Frame:
        try:
            message = await self.websocket.receive()
        except (WebSocketDisconnect, RuntimeError) as error:
            raise ChannelClosed(f"receive failed: {error}") from error

        if message["type"] == "websocket.disconnect":
            code = message.get("code", 1000)
            raise ChannelClosed(f"client disconnected ({code})", code=code)

        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send(self, text: str) -> None:
        try:
            await self.websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError) as error:
            raise ChannelClosed(f"send failed: {error}") from error


@router.websocket("/ws")
async def console_session(websocket: WebSocket, store: store_dep, config: config_dep):
    """
    One console session per websocket.
    Transport faults end up here and only here: they are logged, the socket is
    closed when still open, and the session is over.
    """
    await websocket.accept()
    peer = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    session = SessionLoop(
        WebSocketChannel(websocket),
        QueryExecutor(store, stats_command=config.stats_command),
        config,
    )
    logger.info(f"Session opened for {peer}")

    try:
        await session.run()
    except RequestDecodeError as error:
        logger.warning(f"Closing session for {peer}: {error}")
        try:
            await websocket.close(code=config.decode_error_close_code, reason="malformed request")
        except (WebSocketDisconnect, RuntimeError) as close_error:
            logger.info(f"Session for {peer} already gone: {close_error}")
    except ChannelClosed as error:
        logger.info(
            f"Session for {peer} ended after {session.exchanges} exchanges: {error}"
        )
