import logging
from contextlib import asynccontextmanager

from aiokafka import AIOKafkaProducer
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import make_asgi_app

from restaurant.config import settings
from restaurant.database import Base, engine
from restaurant.errors import OrderingError, ValidationError
from restaurant.events import KafkaEventPublisher
from restaurant.middleware.metrics import MetricsMiddleware
from restaurant.middleware.request_id import RequestIDMiddleware
from restaurant.routers import analytics, menu, orders, staff, staff_orders
from restaurant.services.menu_service import seed_menu_items
from shared.logging import setup_logging
from shared.tracing import setup_tracing

SERVICE_NAME = "restaurant-api"

setup_logging(SERVICE_NAME, settings.log_level)
logger = logging.getLogger(__name__)

setup_tracing(SERVICE_NAME, settings.otlp_endpoint)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up, creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    if settings.seed_menu:
        await seed_menu_items()

    producer = AIOKafkaProducer(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        enable_idempotence=True,
    )
    await producer.start()
    app.state.event_publisher = KafkaEventPublisher(producer)
    logger.info("Startup complete")

    yield

    await producer.stop()
    await engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Restaurant Ordering",
    description="Dine-in ordering, kitchen queue, menu, staff scheduling and reporting",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    body: dict = {"error": exc.message}
    if isinstance(exc, ValidationError):
        body["details"] = exc.messages
    if exc.status_code >= 500:
        logger.error(
            "Unhandled ordering error",
            extra={"request_id": getattr(request.state, "request_id", "unknown"), "error": exc.message},
        )
    return JSONResponse(status_code=exc.status_code, content=body)


FastAPIInstrumentor.instrument_app(app)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(orders.router, tags=["orders"])
app.include_router(staff_orders.router, prefix="/staff", tags=["kitchen"])
app.include_router(menu.router, prefix="/menu", tags=["menu"])
app.include_router(menu.staff_router, prefix="/staff/menu", tags=["menu"])
app.include_router(staff.router, prefix="/staff", tags=["staff"])
app.include_router(analytics.router, prefix="/staff/analytics", tags=["analytics"])

# Expose Prometheus metrics at /metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
