"""
Coffee World HTTP API.

Usage:
    uvicorn coffeeworld.api.main:app
"""
