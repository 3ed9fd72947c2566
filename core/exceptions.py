"""
Business-level exceptions raised by the services and converted to HTTP
responses by the routes.
"""

from fastapi import HTTPException, status


class FoodHubError(Exception):
    """Base exception for all business logic errors."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Something went wrong"):
        self.message = message
        super().__init__(self.message)


class InvalidRequestError(FoodHubError):
    """Raised when a request can't proceed with the current state (empty cart, no address)."""
    pass


class CartConflictError(FoodHubError):
    """Raised when adding an item would replace a cart from another restaurant."""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current_restaurant_name: str):
        self.current_restaurant_name = current_restaurant_name
        super().__init__(
            f"Your cart contains items from {current_restaurant_name}. "
            "Adding this item will clear your current cart."
        )


class StaleCartError(FoodHubError):
    """Raised when a cart mutation was based on an outdated cart version."""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Cart has changed (expected version {expected}, found {actual})")


def raise_http(error: FoodHubError):
    """Convert a business exception to an HTTP exception."""
    raise HTTPException(status_code=error.status_code, detail=error.message)
