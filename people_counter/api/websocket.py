"""Echo WebSocket channel.

Answers every text frame with ``"Echo back text: <text>"`` and every binary
frame with its length. It never reads or writes observations.
"""

import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CLOSE_CODE = 1011


def echo_reply(message: dict) -> Optional[str]:
    """Build the reply for one received ASGI websocket message.

    Returns:
        The reply text, or None for frames that get no answer.
    """
    text = message.get("text")
    if text is not None:
        return f"Echo back text: {text}"
    data = message.get("bytes")
    if data is not None:
        return f"Received bytes of length: {len(data)}"
    return None


async def send_close_message(websocket: WebSocket, code: int, reason: str) -> None:
    try:
        await websocket.close(code=code, reason=reason)
    except RuntimeError as exc:
        logger.warning("Could not close websocket cleanly: %s", exc)


async def echo_socket(websocket: WebSocket) -> None:
    """Serve one WebSocket connection until the client disconnects."""
    await websocket.accept()
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.debug("Websocket closed by client (code=%s)", message.get("code"))
            break

        reply = echo_reply(message)
        if reply is None:
            continue
        logger.debug("Websocket frame received, replying: %s", reply)

        try:
            await websocket.send_text(reply)
        except (RuntimeError, WebSocketDisconnect) as exc:
            logger.error("Error sending: %s", exc)
            await send_close_message(
                websocket, INTERNAL_ERROR_CLOSE_CODE, f"Error occured: {exc}"
            )
            break
