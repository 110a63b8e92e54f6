"""
Coffee World Test Suite

Tests are organized into:
- unit/: Unit tests for individual components
- integration/: HTTP tests against the FastAPI app
"""
