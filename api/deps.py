from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from core.config import settings
from core.database import get_profiles_collection
from schemas.user import Profile, UserRole
from services.cart_store import CartStore
from services.checkout import CheckoutService
from services.filter_store import FilterStore
from services.order_lifecycle import OrderLifecycleSimulator
from services.view_cache import ViewCache

bearer_scheme = HTTPBearer()


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> Profile:
    """
    Validate the auth provider's token and return the caller's profile
    """
    try:
        payload = jwt.decode(
            credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id = payload.get("sub")
    except JWTError:
        user_id = None

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profiles_collection = get_profiles_collection()
    profile = profiles_collection.find_one({"_id": user_id})

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return Profile(**profile)


async def get_current_admin_user(current_user: Profile = Depends(get_current_user)) -> Profile:
    """
    Check if current user is an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


async def get_current_restaurant_owner(current_user: Profile = Depends(get_current_user)) -> Profile:
    """
    Check if current user may manage restaurants
    """
    if current_user.role not in (UserRole.RESTAURANT_OWNER, UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


def get_view_cache(request: Request) -> ViewCache:
    return request.app.state.view_cache


def get_order_lifecycle(request: Request) -> OrderLifecycleSimulator:
    return request.app.state.order_lifecycle


def get_cart_store(
        request: Request,
        current_user: Profile = Depends(get_current_user)
) -> CartStore:
    return request.app.state.cart_stores.get(current_user.id)


def get_filter_store(
        request: Request,
        current_user: Profile = Depends(get_current_user)
) -> FilterStore:
    return request.app.state.filter_stores.get(current_user.id)


def get_checkout_service(request: Request) -> CheckoutService:
    lifecycle = request.app.state.order_lifecycle if settings.SIMULATE_ORDER_LIFECYCLE else None
    return CheckoutService(view_cache=request.app.state.view_cache, lifecycle=lifecycle)
