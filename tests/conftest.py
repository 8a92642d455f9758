import asyncio
import json
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from fsclient.client import StoreClient
from fsclient.session import FileSession

T1 = "2024-05-01T10:00:00Z"
T2 = "2024-05-02T11:30:00Z"

BASE_URL = "http://store.test"


def row(name: str, path: str, is_dir: bool = False, size: int = 0, modified: str = T1, mime: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"name": name, "path": path, "size": size, "isDir": is_dir, "modified": modified}
    if mime:
        out["mimeType"] = mime
    return out


class FakeStore:
    """In-memory stand-in for the file store HTTP API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.listings: Dict[str, List[Dict[str, Any]]] = {
            "": [row("docs", "docs", is_dir=True)],
            "docs": [row("a.txt", "docs/a.txt", size=120, modified=T2, mime="text/plain")],
        }
        self.blobs: Dict[str, bytes] = {"docs/a.txt": b"hello world"}
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []
        self.bodies: List[bytes] = []
        self.errors: Dict[Tuple[str, str], Tuple[int, str]] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.raw_listing: Optional[str] = None

    def fail(self, method: str, path: str, status: int, text: str) -> None:
        self.errors[(method, path)] = (status, text)

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    def listing_calls(self) -> List[str]:
        return [params.get("path", "") for m, p, params in self.calls if m == "GET" and p == "/api/files"]

    def _find(self, path: str) -> Optional[Dict[str, Any]]:
        for rows in self.listings.values():
            for r in rows:
                if r["path"] == path:
                    return r
        return None

    def _add(self, path: str, entry: Dict[str, Any]) -> None:
        parent = "/".join(path.split("/")[:-1])
        self.listings.setdefault(parent, []).append(entry)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        route = (request.method, request.url.path)
        self.calls.append((request.method, request.url.path, params))
        body = await request.aread()
        self.bodies.append(body)
        if route in self.errors:
            status, text = self.errors[route]
            return httpx.Response(status, text=text)

        if route == ("GET", "/api/files"):
            path = params.get("path", "")
            gate = self.gates.get(path)
            if gate is not None:
                await gate.wait()
            if self.raw_listing is not None:
                return httpx.Response(200, text=self.raw_listing)
            if path not in self.listings:
                return httpx.Response(404, text=f"directory not found: {path}")
            return httpx.Response(200, json=self.listings[path])

        if route == ("GET", "/api/files/info"):
            entry = self._find(params.get("path", ""))
            if entry is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, json=entry)

        if route == ("GET", "/api/files/download"):
            blob = self.blobs.get(params.get("path", ""))
            if blob is None:
                return httpx.Response(404)
            return httpx.Response(200, content=blob)

        if route == ("POST", "/api/upload"):
            part = re.search(rb'filename="([^"]*)"\r\n(?:[^\r\n]+\r\n)*\r\n(.*?)\r\n--', body, re.S)
            filename, data = part.group(1).decode(), part.group(2)
            dest = re.search(rb'name="path"\r\n\r\n(.*?)\r\n', body)
            prefix = dest.group(1).decode() if dest else ""
            full = f"{prefix}/{filename}" if prefix else filename
            self._add(full, row(full.split("/")[-1], full, size=len(data)))
            return httpx.Response(200, json={"path": full, "size": len(data)})

        if route == ("POST", "/api/directories"):
            path = json.loads(body)["path"]
            self.listings[path] = []
            self._add(path, row(path.split("/")[-1], path, is_dir=True))
            return httpx.Response(201, text="created")

        if route == ("DELETE", "/api/files"):
            path = json.loads(body)["path"]
            if self._find(path) is None:
                return httpx.Response(404, text=f"no such file: {path}")
            for rows in self.listings.values():
                rows[:] = [r for r in rows if r["path"] != path]
            return httpx.Response(204)

        return httpx.Response(404, text="unknown route")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
async def client(store: FakeStore):
    c = StoreClient(base_url=BASE_URL, transport=httpx.MockTransport(store.handler))
    yield c
    await c.aclose()


@pytest.fixture
def session(client: StoreClient) -> FileSession:
    return FileSession(client)
