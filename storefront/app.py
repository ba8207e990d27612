"""
Storefront Service - Main FastAPI Application.

Serves the "Create a store" page with its live form, the product listing and
product detail pages, and the theme toggle. Pages are rendered with Jinja2 and
enhanced with HTMX; the store form talks to the service over a WebSocket so
domain availability can be checked while the user types.
"""

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .api_client import catalog_client, store_client
from .config import settings
from .exceptions import StorefrontException, ValidationException
from .logging_config import clear_request_id, get_logger, set_request_id, setup_logging
from .metrics import (
    form_session_closed,
    form_session_opened,
    metrics_endpoint,
    track_page_view,
    track_request_metrics,
)
from .middleware import (
    PerformanceMonitoringMiddleware,
    PrometheusMiddleware,
    RequestLoggingMiddleware,
    StaticFileCacheMiddleware,
)
from .store_form import CATEGORIES, CURRENCIES, LOCATIONS, StoreFormSession
from .tracing import setup_tracing

SERVICE_NAME = "storefront-service"
THEME_COOKIE = "theme"
THEMES = ("light", "dark")

setup_logging(
    log_level=settings.LOG_LEVEL,
    service_name=SERVICE_NAME,
    use_json=not settings.DEBUG,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Logs the effective configuration, probes the product catalog and closes
    the upstream HTTP clients on shutdown.
    """
    logger.info("Starting Storefront Service")
    logger.info(
        "Configuration loaded",
        extra={
            "extra_fields": {
                "app_name": settings.APP_NAME,
                "debug_mode": settings.DEBUG,
                "log_level": settings.LOG_LEVEL,
                "product_service_url": settings.PRODUCT_SERVICE_URL,
                "store_service_url": settings.STORE_SERVICE_URL,
                "request_timeout": settings.REQUEST_TIMEOUT,
                "debounce_seconds": settings.DOMAIN_CHECK_DEBOUNCE_SECONDS,
                "tracing": settings.ENABLE_TRACING,
            }
        },
    )

    if await catalog_client.health_check():
        logger.info("Product catalog connectivity verified")
    else:
        logger.error(
            "Product catalog is not responding",
            extra={
                "extra_fields": {
                    "product_service_url": settings.PRODUCT_SERVICE_URL,
                    "impact": "Product pages will show empty or not-found states",
                }
            },
        )

    yield

    logger.info("Shutting down Storefront Service")
    await catalog_client.close()
    await store_client.close()
    logger.info("HTTP clients closed")


app = FastAPI(
    title=settings.APP_NAME,
    description="Storefront web front-end: store creation and product browsing",
    version="1.0.0",
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware (order matters - first added is last executed)
app.add_middleware(StaticFileCacheMiddleware)
app.add_middleware(
    PerformanceMonitoringMiddleware,
    slow_request_threshold_ms=settings.SLOW_REQUEST_THRESHOLD_MS,
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(PrometheusMiddleware, track_func=track_request_metrics)

if settings.ENABLE_TRACING:
    setup_tracing(app, service_name=SERVICE_NAME, service_version="1.0.0")

BASE_PATH = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_PATH / "templates"))
app.mount("/static", StaticFiles(directory=str(BASE_PATH / "static")), name="static")


def get_theme(request: Request) -> str:
    """Theme stored in the browser's cookie, light unless it says dark."""
    theme = request.cookies.get(THEME_COOKIE)
    return theme if theme in THEMES else "light"


def _page_context(request: Request, **extra: Any) -> Dict[str, Any]:
    context: Dict[str, Any] = {
        "app_name": settings.APP_NAME,
        "theme": get_theme(request),
    }
    context.update(extra)
    return context


@app.get(
    "/",
    response_class=HTMLResponse,
    tags=["Pages"],
    summary="Create a store",
)
async def homepage(request: Request) -> HTMLResponse:
    """
    Render the "Create a store" page.

    The form connects to ``/ws/store-form`` for live validation, domain
    availability checks and submission.
    """
    track_page_view("home")
    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context=_page_context(
            request,
            categories=CATEGORIES,
            locations=LOCATIONS,
            currencies=CURRENCIES,
            domain_suffix=settings.STORE_DOMAIN_SUFFIX,
        ),
    )


@app.get(
    "/products",
    response_class=HTMLResponse,
    tags=["Pages"],
    summary="Product listing",
)
async def products_page(request: Request) -> HTMLResponse:
    """
    Render the product listing shell.

    The page shows skeleton cards and lets HTMX load ``/partials/products``,
    so the placeholder is visible while the catalog request is pending.
    """
    track_page_view("products")
    return templates.TemplateResponse(
        request=request,
        name="products.html",
        context=_page_context(request, skeleton_count=8),
    )


@app.get(
    "/partials/products",
    response_class=HTMLResponse,
    tags=["Products"],
    summary="Product cards partial",
)
async def products_grid(request: Request) -> HTMLResponse:
    """
    Fetch the product collection and return the card grid as an HTML partial.

    A failed fetch renders the empty state with a notice instead of an error page.
    """
    error_message = None
    try:
        products = await catalog_client.list_products()
    except StorefrontException as error:
        logger.warning(
            "Product listing unavailable",
            extra={
                "extra_fields": {
                    "error_type": type(error).__name__,
                    "error_message": error.message,
                }
            },
        )
        products = []
        error_message = "Products could not be loaded right now. Please try again later."

    return templates.TemplateResponse(
        request=request,
        name="components/product_grid.html",
        context={"products": products, "error_message": error_message},
    )


@app.get(
    "/products/{product_id}",
    response_class=HTMLResponse,
    tags=["Pages"],
    summary="Product detail",
)
async def product_detail_page(request: Request, product_id: str) -> HTMLResponse:
    """
    Render a single product.

    The catalog has no single-item endpoint, so the product is located in the
    full collection. Unknown ids and failed fetches both render the 404 page.
    """
    try:
        product = await catalog_client.get_product(product_id)
    except StorefrontException as error:
        logger.warning(
            "Product detail unavailable",
            extra={
                "extra_fields": {
                    "product_id": product_id,
                    "error_type": type(error).__name__,
                }
            },
        )
        product = None

    if product is None:
        return templates.TemplateResponse(
            request=request,
            name="not_found.html",
            context=_page_context(request),
            status_code=404,
        )

    track_page_view("product_detail")
    return templates.TemplateResponse(
        request=request,
        name="product_detail.html",
        context=_page_context(request, product=product),
    )


@app.post("/theme/toggle", tags=["Pages"], summary="Toggle light/dark theme")
async def toggle_theme(request: Request) -> RedirectResponse:
    """Flip the theme cookie and send the browser back where it came from."""
    next_theme = "light" if get_theme(request) == "dark" else "dark"
    response = RedirectResponse(
        url=request.headers.get("referer") or "/", status_code=303
    )
    response.set_cookie(
        THEME_COOKIE,
        next_theme,
        max_age=60 * 60 * 24 * 365,
        samesite="lax",
    )
    logger.debug(f"Theme switched to {next_theme}")
    return response


@app.get(
    "/health",
    tags=["Health"],
    summary="Health check",
)
async def health_check() -> Dict[str, Any]:
    """
    Report service health and product catalog reachability.

    Returns:
        Dictionary with health status information:
        {
            "status": "healthy" | "degraded",
            "service": "storefront-service",
            "dependencies": {"product_catalog": "healthy" | "unhealthy"}
        }
    """
    catalog_healthy = await catalog_client.health_check()

    return {
        "status": "healthy" if catalog_healthy else "degraded",
        "service": SERVICE_NAME,
        "dependencies": {
            "product_catalog": "healthy" if catalog_healthy else "unhealthy",
        },
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return await metrics_endpoint()


@app.websocket("/ws/store-form")
async def store_form_socket(websocket: WebSocket) -> None:
    """
    Live store creation form.

    One connection is one form session. Send JSON messages:

    ```json
    {"action": "update", "field": "domain", "value": "shop"}
    {"action": "blur", "field": "store_name"}
    {"action": "submit"}
    {"action": "ping"}
    ```

    The service answers with ``domain_status``, ``field_error``,
    ``submit_result``, ``pong`` and ``error`` messages.
    """
    await websocket.accept()
    session_id = set_request_id()

    async def notify(message: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as error:
            logger.debug(
                "Dropped form update for closed connection",
                extra={"extra_fields": {"type": message.get("type"), "error": str(error)}},
            )

    session = StoreFormSession(
        store_client,
        notify=notify,
        debounce_seconds=settings.DOMAIN_CHECK_DEBOUNCE_SECONDS,
    )
    form_session_opened()
    logger.info("Store form session opened")

    try:
        await notify({"type": "status", "message": "connected", "session_id": session_id})
        while True:
            raw = await websocket.receive_text()
            await _handle_form_message(session, notify, raw)
    except WebSocketDisconnect:
        logger.info("Store form session closed by client")
    finally:
        await session.close()
        form_session_closed()
        clear_request_id()


async def _handle_form_message(
    session: StoreFormSession, notify: Any, raw: str
) -> None:
    try:
        data = json.loads(raw)
    except ValueError:
        await notify({"type": "error", "message": "Message is not valid JSON"})
        return

    action = data.get("action") if isinstance(data, dict) else None

    try:
        if action == "update":
            await session.update_field(data.get("field"), data.get("value"))
        elif action == "blur":
            await session.blur(data.get("field"))
        elif action == "submit":
            result = await session.submit()
            await notify(result.to_message())
        elif action == "ping":
            await notify({"type": "pong"})
        else:
            await notify({"type": "error", "message": f"Unknown action: {action}"})
    except ValidationException as error:
        logger.info(
            "Rejected form message",
            extra={"extra_fields": {"action": action, "reason": error.reason}},
        )
        await notify({"type": "error", "message": error.message})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
