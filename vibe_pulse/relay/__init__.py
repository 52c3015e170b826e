"""
Loopback relay for local development.

FastAPI app that receives signed vibe readings and rebroadcasts them as
vibe:update frames to websocket subscribers. See relay.server.
"""
