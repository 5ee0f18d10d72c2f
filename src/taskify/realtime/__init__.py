"""Real-time infrastructure — in-process hub + WebSocket.

Learn: Messages reach browsers through two paths:
1. HTTP mutation → service → BroadcastHub.broadcast() → every live socket
2. Live socket → BroadcastHub.relay() → every OTHER live socket

The hub lives on app.state (one per application instance) and is the
only owner of the live-connection set.
"""
