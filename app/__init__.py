"""
FastAPI Application Package

Host shell for the rate view engine: serves the controller's derived state
over REST and pushes state snapshots over WebSocket.
"""
