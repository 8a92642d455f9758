import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

try:
    import httpx
except ModuleNotFoundError as exc:  # pragma: no cover - user environment dependency
    raise ModuleNotFoundError(
        "Missing dependency 'httpx'. Install with: pip install httpx"
    ) from exc

from .config import DEFAULT_BASE_URL, Settings
from .errors import RemoteError
from .utils import append_log_line, get_logger, redacted_headers, truncate_text


class StoreClient:
    """Async transport for the file store HTTP API.

    Non-2xx answers and transport failures surface as RemoteError carrying the
    raw server text. The client holds no listing state of its own.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        verify: bool = True,
        http_log_path: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.logger = get_logger('fsclient')
        self.http_log_path = http_log_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=verify,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "StoreClient":
        return cls(
            base_url=settings.base_url,
            token=settings.token,
            timeout=settings.timeout,
            verify=settings.verify,
            http_log_path=settings.http_log_path,
            transport=transport,
        )

    def _default_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _prepare(self, method: str, path: str, kwargs: Dict[str, Any]) -> str:
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        headers = dict(self._default_headers())
        headers.update(kwargs.get('headers', {}) or {})
        kwargs['headers'] = headers
        redacted = redacted_headers(headers)
        self.logger.debug('HTTP %s %s params=%s headers=%s', method, url, kwargs.get('params'), redacted)
        if self.http_log_path:
            payload = kwargs.get("json", kwargs.get("data"))
            if payload is not None:
                append_log_line(self.http_log_path, f"{method} {url} headers={redacted} payload={payload}")
            else:
                append_log_line(self.http_log_path, f"{method} {url} headers={redacted}")
        return url

    def _log_response(self, method: str, url: str, resp: httpx.Response, body: str) -> None:
        self.logger.debug('HTTP %s %s status=%s', method, url, resp.status_code)
        if self.http_log_path:
            append_log_line(
                self.http_log_path,
                f"{method} {url} status={resp.status_code} response={json.dumps(truncate_text(body), ensure_ascii=True)}",
            )

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = self._prepare(method, path, kwargs)
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            self.logger.debug('HTTP %s %s failed: %s', method, url, exc)
            raise RemoteError(str(exc) or exc.__class__.__name__) from exc
        self._log_response(method, url, resp, resp.text or "")
        if not resp.is_success:
            raise RemoteError(resp.text, resp.status_code)
        return resp

    @asynccontextmanager
    async def stream(self, method: str, path: str, **kwargs: Any) -> AsyncIterator[httpx.Response]:
        url = self._prepare(method, path, kwargs)
        try:
            async with self._client.stream(method, url, **kwargs) as resp:
                if not resp.is_success:
                    await resp.aread()
                    self._log_response(method, url, resp, resp.text or "")
                    raise RemoteError(resp.text or "Failed to download file", resp.status_code)
                self._log_response(method, url, resp, "<stream>")
                yield resp
        except httpx.HTTPError as exc:
            self.logger.debug('HTTP %s %s failed: %s', method, url, exc)
            raise RemoteError(str(exc) or exc.__class__.__name__) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
