"""WebSocket endpoint — live channel between browsers and the hub.

Learn: Each browser tab opens one socket (at / or /ws). The handler:
1. Accepts the handshake and registers a Connection with the hub
2. Relays every inbound frame verbatim to all OTHER open sockets
3. Unregisters on disconnect or error

Outbound task events don't pass through this handler at all: the HTTP
routes hand them to the hub, which writes to the sockets directly.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from taskify.realtime.hub import BroadcastHub, Connection

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/")
@router.websocket("/ws")
async def live_socket(websocket: WebSocket):
    """Live channel for task events and client-to-client relay."""
    hub: BroadcastHub = websocket.app.state.hub

    await websocket.accept()
    connection = Connection(websocket)
    await hub.register(connection)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None and message.get("bytes") is not None:
                text = message["bytes"].decode("utf-8", errors="replace")
            if text is None:
                continue

            logger.debug("ws.received", connection_id=connection.id, size=len(text))
            await hub.relay(connection, text)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("ws.connection_error", connection_id=connection.id, error=str(e))
    finally:
        await hub.unregister(connection)
