"""
HTTP server for user-service using FastAPI.
Provides the users REST API plus health and metrics endpoints.
"""

import logging
import time
import uuid
from typing import Dict, List

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.ports import ValidationError, InvalidQueryError, StorageError
from ..domain.schema import HealthStatus, User, UserInput, WriteStatus
from ..services.users_service import UsersService
from ..telemetry.logger import correlation_id_var
from ..telemetry.metrics import HTTPMetrics


logger = logging.getLogger(__name__)

SERVICE_NAME = "user-service"
REQUEST_ID_HEADER = "X-Request-ID"
USER_NOT_FOUND = "user not found"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def first_query_values(request: Request) -> Dict[str, str]:
    """Repeated query parameters resolve to their first occurrence."""
    params = request.query_params
    return {key: params.getlist(key)[0] for key in params.keys()}


class UsersAPI:
    """
    FastAPI application for user-service.
    Handles users CRUD, health checks and metrics exposition.
    """

    def __init__(
        self,
        users_service: UsersService,
        metrics: HTTPMetrics,
        api_prefix: str = "/v1",
        title: str = "User Service",
        version: str = "1.0.0"
    ):
        """
        Initialize FastAPI application.

        Args:
            users_service: Users service implementation
            metrics: HTTP metrics bound to the process registry
            api_prefix: Path prefix of the users resource
            title: API title
            version: API version
        """
        self.users_service = users_service
        self.metrics = metrics
        self.api_prefix = api_prefix.rstrip("/")

        self.app = FastAPI(
            title=title,
            version=version,
            description="CRUD API for users with change events on Redis Streams",
            docs_url="/docs",
            redoc_url="/redoc"
        )

        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _setup_middleware(self) -> None:
        """Setup FastAPI middleware."""

        @self.app.middleware("http")
        async def observe_requests(request: Request, call_next):
            correlation_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
            token = correlation_id_var.set(correlation_id)
            start_time = time.perf_counter()

            try:
                logger.info(
                    f"Request started: {request.method} {request.url.path}",
                    extra={
                        "component": "http_server",
                        "method": request.method,
                        "path": request.url.path,
                        "client_ip": request.client.host if request.client else "unknown"
                    }
                )

                response = await call_next(request)

                elapsed = time.perf_counter() - start_time
                self.metrics.observe_request(
                    request.url.path, request.method, response.status_code, elapsed
                )
                logger.info(
                    f"Request completed: {response.status_code}",
                    extra={
                        "component": "http_server",
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "elapsed_ms": round(elapsed * 1000, 2)
                    }
                )

                response.headers[REQUEST_ID_HEADER] = correlation_id
                return response
            finally:
                correlation_id_var.reset(token)

    def _setup_routes(self) -> None:
        """Setup FastAPI routes."""
        router = APIRouter(prefix=f"{self.api_prefix}/users", tags=["users"])
        service = self.users_service

        @router.post(
            "",
            response_model=User,
            status_code=201,
            summary="Create User"
        )
        async def create_user(user: UserInput):
            try:
                outcome = await service.create_user(user)
            except StorageError:
                return error_response(500, "user not created")

            return outcome.user

        @router.get(
            "",
            response_model=List[User],
            summary="List Users",
            description="Paginated, sorted and filtered list of users"
        )
        async def list_users(request: Request):
            try:
                return await service.list_users(first_query_values(request))
            except StorageError:
                return error_response(500, "failed to get users")

        @router.get(
            "/{user_id}",
            response_model=User,
            summary="Get User"
        )
        async def get_user(user_id: str):
            try:
                user = await service.get_user(user_id)
            except StorageError:
                return error_response(500, "failed to get user")

            if user is None:
                return error_response(404, USER_NOT_FOUND)
            return user

        @router.put(
            "/{user_id}",
            status_code=204,
            response_class=Response,
            summary="Update User"
        )
        async def update_user(user_id: str, user: UserInput):
            try:
                outcome = await service.update_user(user_id, user)
            except StorageError:
                return error_response(500, "user not updated")

            if outcome.status == WriteStatus.NOT_FOUND:
                return error_response(404, USER_NOT_FOUND)
            return Response(status_code=204)

        @router.delete(
            "/{user_id}",
            status_code=204,
            response_class=Response,
            summary="Delete User"
        )
        async def delete_user(user_id: str):
            try:
                outcome = await service.delete_user(user_id)
            except StorageError:
                return error_response(500, "user not deleted")

            if outcome.status == WriteStatus.NOT_FOUND:
                return error_response(404, USER_NOT_FOUND)
            return Response(status_code=204)

        self.app.include_router(router)

        @self.app.get(
            "/healthz",
            response_model=dict,
            summary="Liveness Check"
        )
        async def liveness_check() -> dict:
            """Always returns OK if the process is serving."""
            return {
                "status": "ok",
                "service": SERVICE_NAME,
                "timestamp": time.time()
            }

        @self.app.get(
            "/health",
            response_model=HealthStatus,
            summary="Health Check",
            description="Checks MongoDB and Redis connectivity"
        )
        async def health_check():
            checks = {
                "mongodb": "ok" if await service.storage.check_health() else "failed",
                "redis": "ok" if await service.publisher.check_health() else "failed",
            }
            healthy = all(result == "ok" for result in checks.values())
            health_status = HealthStatus(
                status="healthy" if healthy else "unhealthy",
                checks=checks
            )

            if not healthy:
                logger.warning(
                    f"Service not ready: {health_status.status}",
                    extra={"component": "http_server", "checks": checks}
                )
                return JSONResponse(
                    status_code=503,
                    content=health_status.model_dump(mode="json")
                )

            return health_status

        @self.app.get(
            "/metrics",
            summary="Metrics",
            description="Prometheus metrics"
        )
        async def metrics() -> Response:
            return Response(content=self.metrics.render(), media_type=self.metrics.content_type)

    def _setup_exception_handlers(self) -> None:
        """Setup custom exception handlers."""

        @self.app.exception_handler(ValidationError)
        async def validation_exception_handler(request: Request, exc: ValidationError):
            logger.info(
                f"Invalid user request: {exc}",
                extra={"component": "http_server", "path": request.url.path}
            )
            return error_response(400, str(exc))

        @self.app.exception_handler(InvalidQueryError)
        async def query_exception_handler(request: Request, exc: InvalidQueryError):
            logger.info(
                f"Invalid list query: {exc}",
                extra={"component": "http_server", "path": request.url.path}
            )
            return error_response(400, str(exc))

        @self.app.exception_handler(RequestValidationError)
        async def request_body_exception_handler(request: Request, exc: RequestValidationError):
            errors = exc.errors()
            message = errors[0].get("msg", "invalid request") if errors else "invalid request"
            logger.info(
                f"Invalid request body: {message}",
                extra={"component": "http_server", "path": request.url.path}
            )
            return error_response(400, message)
