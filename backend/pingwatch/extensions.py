from fastapi import Request
from pingwatch.services.store import Store


def get_store(request: Request) -> Store:
    """Store shared by the monitor and the API, set on app.state at import time."""
    return request.app.state.store
