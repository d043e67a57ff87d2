"""Wrapper de httpx: petición → reintentos → envelope normalizado.

Por qué un wrapper:
- Estandariza timeouts, headers, retries y logging para todas las llamadas.
- Ningún fallo de red sale de aquí como excepción: todo termina en un
  `ApiResponse` (éxito o fallo clasificado).
- Facilita testeo: se le puede inyectar un `httpx.AsyncClient` con
  `MockTransport` y un `sleep` falso.

Clasificación de fallos (último intento):
- la API respondió con status de error   -> SERVER_ERROR (o `code` del body)
- la petición salió pero no hubo respuesta -> NO_RESPONSE (status 0)
- la petición ni siquiera pudo armarse/enviarse -> UNKNOWN_ERROR (status 0)
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from functools import lru_cache
from typing import Any, Awaitable, Callable

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr, TypeAdapter, ValidationError

from core.config import AppSettings
from core.domain.envelope import ApiError, ApiResponse, ErrorCode, ResponseMeta
from core.domain.http import HttpMethod, RequestDescriptor, RetryPolicy
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

TOTAL_COUNT_HEADER = "x-total-count"
PAGE_HEADER = "x-page"
LIMIT_HEADER = "x-limit"

# 408 es un timeout del lado servidor: se reintenta aunque sea 4xx.
_RETRYABLE_CLIENT_STATUSES = frozenset({408})

Sleep = Callable[[float], Awaitable[Any]]


class ApiClientConfig(BaseModel):
    """Configuración inmutable del cliente.

    Por qué inmutable:
    - Cambiar headers por defecto devuelve una config (y un cliente) nuevos;
      las llamadas en vuelo del cliente original no ven el cambio.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    timeout: float = Field(default=10.0, gt=0)
    default_headers: dict[str, str] = Field(default_factory=dict)
    with_credentials: bool = False
    auth_token: SecretStr | None = None
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    user_agent: str = "userdesk/0.1"

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ApiClientConfig":
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.http_timeout_seconds,
            default_headers=dict(settings.default_headers),
            with_credentials=settings.with_credentials,
            auth_token=settings.auth_token,
            retry=RetryPolicy(attempts=settings.retry_attempts, delay=settings.retry_delay_seconds),
            user_agent=settings.user_agent,
        )

    def with_header(self, name: str, value: str) -> "ApiClientConfig":
        return self.model_copy(update={"default_headers": {**self.default_headers, name: value}})

    def without_header(self, name: str) -> "ApiClientConfig":
        headers = {k: v for k, v in self.default_headers.items() if k.lower() != name.lower()}
        return self.model_copy(update={"default_headers": headers})


def build_async_client(
    config: ApiClientConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeout/User-Agent para que todos los clientes se comporten igual.
    - El pool de conexiones lo gestiona httpx; aquí no se guarda estado por llamada.
    """

    headers: dict[str, str] = {
        "User-Agent": config.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _header_int(headers: httpx.Headers, name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_pagination_meta(headers: httpx.Headers) -> ResponseMeta:
    """Lee total/page/limit de los headers; ausente o mal formado -> None (nunca 0)."""

    total = _header_int(headers, TOTAL_COUNT_HEADER)
    page = _header_int(headers, PAGE_HEADER)
    limit = _header_int(headers, LIMIT_HEADER)
    total_pages = math.ceil(total / limit) if total is not None and limit else None
    return ResponseMeta(total=total, page=page, limit=limit, total_pages=total_pages)


@lru_cache(maxsize=64)
def _adapter(response_model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_model)


def _is_local_fault(exc: Exception) -> bool:
    # Errores de transporte que ocurren antes de poner bytes en la red.
    return isinstance(exc, (httpx.UnsupportedProtocol, httpx.LocalProtocolError))


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ApiClient:
    """Cliente HTTP con reintentos acotados y respuestas normalizadas."""

    def __init__(
        self,
        config: ApiClientConfig,
        *,
        http: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not config.base_url or not config.base_url.strip():
            raise ConfigurationError("base_url is required for ApiClient configuration")
        self._config = config
        self._owns_http = http is None
        self._http = http if http is not None else build_async_client(config)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        http: httpx.AsyncClient | None = None,
    ) -> "ApiClient":
        return cls(ApiClientConfig.from_settings(settings), http=http)

    # -- configuración como valor -------------------------------------------

    @property
    def config(self) -> ApiClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _derive(self, config: ApiClientConfig) -> "ApiClient":
        # Comparte el transporte; el dueño original sigue siendo quien lo cierra.
        return ApiClient(config, http=self._http, sleep=self._sleep)

    def with_default_header(self, name: str, value: str) -> "ApiClient":
        return self._derive(self._config.with_header(name, value))

    def without_default_header(self, name: str) -> "ApiClient":
        return self._derive(self._config.without_header(name))

    def with_base_url(self, base_url: str) -> "ApiClient":
        return self._derive(self._config.model_copy(update={"base_url": base_url}))

    def with_retry(self, retry: RetryPolicy) -> "ApiClient":
        return self._derive(self._config.model_copy(update={"retry": retry}))

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- API pública ---------------------------------------------------------

    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retry: RetryPolicy | None = None,
        response_model: Any = None,
    ) -> ApiResponse[Any]:
        """GET envía `data` como query params; el resto como body JSON."""

        try:
            descriptor = RequestDescriptor.for_call(
                method, path, data, headers=headers, timeout=timeout, retry=retry
            )
        except (TypeError, ValueError) as exc:
            method_name = method.value if isinstance(method, HttpMethod) else str(method)
            return self._handle_error(exc, method=method_name, url=path)
        return await self.execute(descriptor, response_model=response_model)

    async def get(self, path: str, params: Any = None, **options: Any) -> ApiResponse[Any]:
        return await self.request(HttpMethod.GET, path, params, **options)

    async def post(self, path: str, data: Any = None, **options: Any) -> ApiResponse[Any]:
        return await self.request(HttpMethod.POST, path, data, **options)

    async def put(self, path: str, data: Any = None, **options: Any) -> ApiResponse[Any]:
        return await self.request(HttpMethod.PUT, path, data, **options)

    async def patch(self, path: str, data: Any = None, **options: Any) -> ApiResponse[Any]:
        return await self.request(HttpMethod.PATCH, path, data, **options)

    async def delete(self, path: str, **options: Any) -> ApiResponse[Any]:
        return await self.request(HttpMethod.DELETE, path, None, **options)

    async def execute(
        self,
        descriptor: RequestDescriptor,
        *,
        response_model: Any = None,
    ) -> ApiResponse[Any]:
        """Ejecuta una llamada lógica y devuelve siempre un envelope."""

        policy = descriptor.retry or self._config.retry
        url = self._url(descriptor.path)
        started = time.perf_counter()
        try:
            response = await self._send_with_retry(descriptor, policy, url)
        except Exception as exc:
            return self._handle_error(exc, method=descriptor.method.value, url=url)
        return self._parse_response(
            response,
            method=descriptor.method.value,
            url=url,
            started=started,
            response_model=response_model,
        )

    # -- internos ------------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        base = self._config.base_url.rstrip("/")
        if not path:
            return base
        return f"{base}/{path.lstrip('/')}"

    def _headers(self, overrides: dict[str, str]) -> dict[str, str]:
        headers = dict(self._config.default_headers)
        if self._config.with_credentials and self._config.auth_token is not None:
            headers["Authorization"] = f"Bearer {self._config.auth_token.get_secret_value()}"
        headers.update(overrides)
        return headers

    def _build_request(self, descriptor: RequestDescriptor, url: str) -> httpx.Request:
        # Un `httpx.Request` nuevo por intento.
        return self._http.build_request(
            descriptor.method.value,
            url,
            params=descriptor.params,
            json=descriptor.body,
            headers=self._headers(descriptor.headers),
            timeout=descriptor.timeout or self._config.timeout,
        )

    async def _send_with_retry(
        self,
        descriptor: RequestDescriptor,
        policy: RetryPolicy,
        url: str,
    ) -> httpx.Response:
        attempt = 0
        while True:
            attempt += 1
            last_attempt = attempt >= policy.attempts
            logger.debug(
                "Sending %s %s (attempt %d/%d)",
                descriptor.method.value,
                url,
                attempt,
                policy.attempts,
                extra={"method": descriptor.method.value, "url": url, "attempt": attempt},
            )
            try:
                response = await self._http.send(self._build_request(descriptor, url))
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                self._log_error_status(exc.response, attempt)
                if last_attempt or (400 <= status < 500 and status not in _RETRYABLE_CLIENT_STATUSES):
                    raise
                last_error: Exception = exc
            except httpx.TransportError as exc:
                if last_attempt or _is_local_fault(exc):
                    raise
                last_error = exc

            logger.warning(
                "Retrying %s %s in %.2fs after attempt %d failed: %s",
                descriptor.method.value,
                url,
                policy.delay,
                attempt,
                last_error,
                extra={"method": descriptor.method.value, "url": url, "attempt": attempt},
            )
            await self._sleep(policy.delay)

    def _log_error_status(self, response: httpx.Response, attempt: int) -> None:
        extra = {
            "method": response.request.method,
            "url": str(response.request.url),
            "status_code": response.status_code,
            "attempt": attempt,
        }
        if response.status_code == 401:
            logger.warning("Unauthorized access detected", extra=extra)
        elif response.status_code >= 500:
            logger.error("Server error occurred: %s", response.text[:500], extra=extra)

    def _parse_response(
        self,
        response: httpx.Response,
        *,
        method: str,
        url: str,
        started: float,
        response_model: Any,
    ) -> ApiResponse[Any]:
        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Request to %s completed in %dms",
            url,
            duration_ms,
            extra={
                "method": method,
                "url": url,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        data = _decode_body(response)
        if response_model is not None and data is not None:
            try:
                data = _adapter(response_model).validate_python(data)
            except ValidationError as exc:
                logger.error(
                    "Response from %s did not match the expected shape",
                    url,
                    extra={"url": url, "error_code": ErrorCode.INVALID_RESPONSE.value},
                )
                return ApiResponse.fail(
                    ApiError(
                        message="Response payload did not match the expected shape",
                        code=ErrorCode.INVALID_RESPONSE.value,
                        status_code=response.status_code,
                        details=exc.errors(include_url=False, include_context=False),
                    )
                )

        return ApiResponse.ok(
            data,
            status_code=response.status_code,
            meta=parse_pagination_meta(response.headers),
        )

    def _handle_error(self, exc: Exception, *, method: str, url: str) -> ApiResponse[Any]:
        if isinstance(exc, httpx.HTTPStatusError):
            # La API respondió con un status de error.
            body = _decode_body(exc.response)
            message = "Server error occurred"
            code = ErrorCode.SERVER_ERROR.value
            if isinstance(body, dict):
                if isinstance(body.get("message"), str) and body["message"]:
                    message = body["message"]
                if isinstance(body.get("code"), str) and body["code"]:
                    code = body["code"]
            api_error = ApiError(
                message=message,
                code=code,
                status_code=exc.response.status_code,
                details=body,
            )
        elif isinstance(exc, httpx.TransportError) and not _is_local_fault(exc):
            # La petición salió pero no llegó respuesta.
            api_error = ApiError(
                message="No response received from server",
                code=ErrorCode.NO_RESPONSE.value,
                status_code=0,
                details={"exception": type(exc).__name__, "reason": str(exc)},
            )
        else:
            api_error = ApiError(
                message=str(exc) or "An unexpected error occurred",
                code=ErrorCode.UNKNOWN_ERROR.value,
                status_code=0,
                details={"exception": type(exc).__name__},
            )

        logger.info(
            "Request to %s failed: %s",
            url,
            api_error.message,
            extra={
                "method": method,
                "url": url,
                "status_code": api_error.status_code,
                "error_code": api_error.code,
            },
        )
        return ApiResponse.fail(api_error)
