"""
FastAPI Application Package

This package contains the main FastAPI application and routing logic.
It serves the funding board over REST and streams every refreshed board
over a WebSocket.
"""
