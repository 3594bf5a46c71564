"""FastAPI dependencies."""

from services.registry import Services, get_services as _get_services


def get_services() -> Services:
    """
    Dependency for the seating engine services.

    Tests override this with services bound to a temporary database.
    """
    return _get_services()
