from datetime import timedelta
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import settings
from core.database import mongodb
from api.routes import users, restaurants, menu, filters, cart, orders, addresses, reviews
from services.cart_store import CartStoreRegistry
from services.filter_store import FilterStoreRegistry
from services.order_lifecycle import OrderLifecycleSimulator
from services.view_cache import ViewCache
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set up CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def init_services(application: FastAPI):
    """Attach the per-process state containers the routes depend on"""
    application.state.view_cache = ViewCache(max_entries=settings.VIEW_CACHE_MAX_ENTRIES)
    application.state.cart_stores = CartStoreRegistry(max_users=settings.MAX_CACHED_USERS)
    application.state.filter_stores = FilterStoreRegistry(max_users=settings.MAX_CACHED_USERS)
    application.state.order_lifecycle = OrderLifecycleSimulator(
        view_cache=application.state.view_cache,
        step=timedelta(minutes=settings.ORDER_STATUS_STEP_MINUTES)
    )


init_services(app)

# Include routers
app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])
app.include_router(restaurants.router, prefix=f"{settings.API_V1_STR}/restaurants", tags=["Restaurants"])
app.include_router(menu.router, prefix=f"{settings.API_V1_STR}/menu", tags=["Menu"])
app.include_router(filters.router, prefix=f"{settings.API_V1_STR}/filters", tags=["Filters"])
app.include_router(cart.router, prefix=f"{settings.API_V1_STR}/cart", tags=["Cart"])
app.include_router(orders.router, prefix=f"{settings.API_V1_STR}/orders", tags=["Orders"])
app.include_router(addresses.router, prefix=f"{settings.API_V1_STR}/addresses", tags=["Addresses"])
app.include_router(reviews.router, prefix=f"{settings.API_V1_STR}/reviews", tags=["Reviews"])


@app.on_event("startup")
async def startup_db_client():
    mongodb.connect_to_database()
    if settings.SIMULATE_ORDER_LIFECYCLE:
        app.state.order_lifecycle.resume_pending()


@app.on_event("shutdown")
async def shutdown_db_client():
    await app.state.order_lifecycle.shutdown()
    mongodb.close_database_connection()


@app.get("/")
async def root():
    return {"message": "Welcome to the FoodHub Ordering API"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
