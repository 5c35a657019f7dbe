"""WebSocket channel on top of a Starlette/FastAPI WebSocket."""

from starlette.websockets import WebSocket, WebSocketDisconnect

from .base import ChannelClosed

# Normal closure, going away, no status received, server restart
CLEAN_CLOSE_CODES = {1000, 1001, 1005, 1012}


class WebSocketChannel:
    """Text frame channel over an accepted WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def receive(self) -> str:
        message = await self.websocket.receive()

        if message["type"] == "websocket.disconnect":
            code = message.get("code", 1000)
            if code in CLEAN_CLOSE_CODES:
                raise ChannelClosed(f"closed with code {code}")
            raise ConnectionError(f"WebSocket closed abnormally (code {code})")

        text = message.get("text")
        if text is not None:
            return text

        data = message.get("bytes") or b""
        # Binary frames are accepted as long as they carry text
        return data.decode("utf-8", errors="replace")

    async def send(self, message: str) -> None:
        try:
            await self.websocket.send_text(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            raise ChannelClosed(str(e)) from e
