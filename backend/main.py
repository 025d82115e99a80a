from fastapi import FastAPI, Request
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.auth import auth_backend, bootstrap_admin, fastapi_users
from core.errors import LifecycleError
from core.logging import add_context, clear_context, configure_logging, get_logger
from db.database import async_session_maker, create_db_and_tables
from routers.bartender import router as bartender_router
from routers.cocktails import router as cocktails_router
from routers.flashes import router as flashes_router
from routers.orders import router as orders_router
from routers.products import router as products_router
from routers.responses import lifecycle_error_response
from routers.stream import router as stream_router
from schemas.users import UserCreate, UserRead, UserUpdate

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    async with async_session_maker() as db:
        await bootstrap_admin(db)
    logger.info("House bartender started")
    yield
    logger.info("House bartender stopped")


app = FastAPI(
    title="House Bartender API",
    description="Cocktail ordering for a home bar: menu, orders and a live bartender queue",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    clear_context()
    add_context(method=request.method, path=request.url.path)
    return await call_next(request)


@app.exception_handler(LifecycleError)
async def handle_lifecycle_error(request: Request, exc: LifecycleError):
    return lifecycle_error_response(request, exc)


@app.get("/health", tags=["health"])
async def health():
    return {"ok": True}


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Menu and stock
app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(cocktails_router, prefix="/cocktails", tags=["cocktails"])

# Orders and the bartender queue
app.include_router(orders_router, prefix="/orders", tags=["orders"])
app.include_router(bartender_router, prefix="/bartender", tags=["bartender"])

# Flash messages and live events
app.include_router(flashes_router, prefix="/flashes", tags=["flashes"])
app.include_router(stream_router, prefix="/events", tags=["events"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
