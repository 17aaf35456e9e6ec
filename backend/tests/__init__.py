"""
Pytest suite for the storefront fulfillment backend.

Test categories:
- Unit tests: services and the state machine against in-memory SQLite
- Integration tests: competing units of work on a file-backed database
- API tests: the FastAPI app through httpx ASGITransport
"""
