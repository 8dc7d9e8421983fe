"""
Base service class for Kube Auth Mock services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from pydantic import BaseModel, ValidationError as PydanticValidationError
from typing import Dict, Optional, Sequence, Tuple, Type, TypeVar
import time

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import (
    KubeAuthException,
    MalformedRequestError,
    MethodNotImplementedError,
    RouteNotImplementedError,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Metrics label for requests answered by the catch-all route
UNMATCHED_ENDPOINT = "unmatched"


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Flatten a pydantic error into a single human-readable line."""
    parts = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(p) for p in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


class BaseService:
    """Base service class with common functionality.

    Subclasses register their routes in ``_setup_service_routes`` through
    ``route``; the catch-all route is added afterwards so it never shadows
    them. It accepts every method, so a request that no route serves (an
    unknown path, or a known path with the wrong verb) always ends in a 501.
    Anything a subclass's routes rely on must exist before
    ``super().__init__`` is called.
    """

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)
        self.port = self.config.port
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)
        # path -> (served methods, "<handler> expects <methods>" message prefix)
        self.method_rules: Dict[str, Tuple[Tuple[str, ...], str]] = {}

        configure_logging(service_name, self.config.effective_log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_service_routes()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        docs_enabled = self.config.enable_docs
        return FastAPI(
            title=f"{self.service_name.replace('_', ' ').title()} Service",
            description="Mock Kubernetes token review API for trust-system tests",
            version="1.0.0",
            docs_url="/docs" if docs_enabled else None,
            redoc_url="/redoc" if docs_enabled else None,
            openapi_url="/openapi.json" if docs_enabled else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            set_request_id(request.headers.get("x-request-id"))
            start_time = time.time()
            # Stays 500 when the exception escapes to ServerErrorMiddleware
            status_code = 500

            try:
                response = await call_next(request)
                status_code = response.status_code
                return response
            finally:
                duration = time.time() - start_time
                endpoint = self._endpoint_label(request)

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=endpoint,
                    status_code=status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=status_code,
                    duration_ms=round(duration * 1000, 2)
                )
                clear_context()

    def _setup_service_routes(self):
        """Register service-specific routes. Override in subclasses."""

    def _setup_routes(self):
        """Set up common routes, error handlers and the catch-all route."""

        @self.app.get("/metrics", include_in_schema=False)
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(KubeAuthException)
        async def kube_auth_exception_handler(request: Request, exc: KubeAuthException):
            """Render a KubeAuthException with its own status code."""
            if exc.status_code >= 500:
                self.logger.error(
                    "Request failed",
                    code=exc.code,
                    message=exc.message,
                    details=exc.details,
                    path=request.url.path,
                )
                self.metrics.record_error(exc.code.lower())
            else:
                self.logger.debug(
                    "Request rejected",
                    code=exc.code,
                    message=exc.message,
                    path=request.url.path,
                )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("internal_error")
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "internal server error"
                }
            )

        async def unimplemented(request: Request):
            """Answer every request no other route serves with 501."""
            raise self.unimplemented_error(request)

        self._unimplemented_endpoint = unimplemented
        # methods=None: a plain Starlette route matching every verb, custom ones included
        self.app.add_route("/{path:path}", unimplemented, methods=None, include_in_schema=False)

    def route(self, path: str, methods: Sequence[str], expectation: str):
        """Register a handler for ``path``.

        ``expectation`` opens the 501 message sent when the path is called
        with any other method, e.g. ``"health handler expects GET"``.
        """
        self.method_rules[path] = (tuple(methods), expectation)
        return self.app.api_route(path, methods=list(methods), include_in_schema=False)

    def unimplemented_error(self, request: Request) -> KubeAuthException:
        """Build the 501 error for a request no route serves."""
        rule = self.method_rules.get(request.url.path)
        if rule is not None:
            _, expectation = rule
            return MethodNotImplementedError(expectation, request.method)

        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        self.logger.debug("Received unimplemented request", request_url=target)
        return RouteNotImplementedError(target)

    def _endpoint_label(self, request: Request) -> str:
        """Route template for metrics labels; never the raw path of an unknown request."""
        if request.scope.get("endpoint") is self._unimplemented_endpoint:
            return UNMATCHED_ENDPOINT
        route = request.scope.get("route")
        if route is not None and getattr(route, "path", None):
            return route.path
        if request.url.path in self.method_rules or request.url.path == "/metrics":
            return request.url.path
        return UNMATCHED_ENDPOINT

    @staticmethod
    async def decode_request(
        request: Request,
        model: Type[ModelT],
        description: str,
        allow_empty: bool = False,
    ) -> ModelT:
        """Decode the JSON body into ``model`` or raise MalformedRequestError."""
        body = await request.body()
        if allow_empty and not body.strip():
            body = b"{}"
        try:
            return model.model_validate_json(body)
        except PydanticValidationError as e:
            raise MalformedRequestError(
                f"invalid {description}: {describe_validation_error(e)}",
                details={"error_count": e.error_count()},
            ) from e

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            timeout_keep_alive=self.config.timeout_keep_alive,
            log_level=self.config.effective_log_level.lower()
        )
