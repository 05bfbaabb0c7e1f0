"""WebSocket session relay and host-side coordinator for multiplayer matches."""
