import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import create_db_and_tables
from app.exceptions import PaymentWorkflowError
from app.routes import (
    admin_orders,
    entitlements,
    health,
    notifications,
    orders,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local, migrations handle the rest
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Coaching Institute Payments API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PaymentWorkflowError)
async def payment_workflow_error_handler(request: Request, exc: PaymentWorkflowError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(entitlements.router, prefix="/entitlements", tags=["Entitlements"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/orders", "/orders/my", "/orders/{order_id}",
            "/orders/{order_id}/proof", "/orders/{order_id}/proof/image",
            "/orders/{order_id}/decision"
        ],
        "entitlement_endpoints": ["/entitlements"],
        "admin_endpoints": ["/admin/orders", "/admin/orders/{order_id}/events"],
        "notification_endpoints": ["/notifications"],
    }
