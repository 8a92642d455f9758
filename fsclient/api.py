from typing import Any, AsyncIterator, BinaryIO, Callable, Dict, List, Optional

import httpx

from .client import StoreClient
from .endpoints import DIRECTORIES, FILES, UPLOAD
from .errors import ParseError
from .models import FileEntry, UploadCandidate, UploadReceipt

ProgressCallback = Callable[[int, int], None]

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _json_or_raise(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise ParseError(status_code=resp.status_code) from exc


def _entry_from_row(row: Any) -> FileEntry:
    if not isinstance(row, dict):
        raise ParseError()
    name = row.get("name")
    path = row.get("path")
    is_dir = row.get("isDir")
    modified = row.get("modified")
    size = row.get("size", 0)
    mime_type = row.get("mimeType")
    if not isinstance(name, str) or not isinstance(path, str) or not isinstance(is_dir, bool):
        raise ParseError()
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ParseError()
    if modified is not None and not isinstance(modified, str):
        raise ParseError()
    if mime_type is not None and not isinstance(mime_type, str):
        raise ParseError()
    return FileEntry(
        name=name,
        path=path.rstrip("/"),
        size=size,
        is_dir=is_dir,
        modified=modified or "",
        mime_type=None if is_dir else mime_type,
    )


class _ProgressReader:
    """File wrapper that reports how many bytes the transport has read."""

    def __init__(self, fh: BinaryIO, total: int, callback: ProgressCallback) -> None:
        self._fh = fh
        self._total = total
        self._callback = callback
        self._sent = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._fh.read(size)
        if chunk:
            self._sent += len(chunk)
            self._callback(self._sent, self._total)
        return chunk

    def seek(self, offset: int, whence: int = 0) -> int:
        pos = self._fh.seek(offset, whence)
        self._sent = self._fh.tell()
        return pos

    def tell(self) -> int:
        return self._fh.tell()

    def close(self) -> None:
        self._fh.close()


async def list_files(client: StoreClient, path: str = "") -> List[FileEntry]:
    params: Dict[str, str] = {"path": path} if path else {}
    resp = await client.request(FILES["list"]["method"], FILES["list"]["path"], params=params)
    payload = _json_or_raise(resp)
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ParseError(status_code=resp.status_code)
    return [_entry_from_row(row) for row in payload]


async def stat_path(client: StoreClient, path: str) -> FileEntry:
    resp = await client.request(FILES["info"]["method"], FILES["info"]["path"], params={"path": path})
    return _entry_from_row(_json_or_raise(resp))


async def upload_file(
    client: StoreClient,
    candidate: UploadCandidate,
    path: str = "",
    on_progress: Optional[ProgressCallback] = None,
) -> UploadReceipt:
    data = {"path": path} if path else None
    fh = candidate.open()
    body: Any = fh
    if on_progress is not None:
        body = _ProgressReader(fh, candidate.size, on_progress)
    try:
        resp = await client.request(
            UPLOAD["upload"]["method"],
            UPLOAD["upload"]["path"],
            files={"file": (candidate.name, body, candidate.type)},
            data=data,
        )
    finally:
        fh.close()
    payload = _json_or_raise(resp)
    if not isinstance(payload, dict):
        raise ParseError(status_code=resp.status_code)
    dest = payload.get("path")
    size = payload.get("size")
    if not isinstance(dest, str) or isinstance(size, bool) or not isinstance(size, int):
        raise ParseError(status_code=resp.status_code)
    return UploadReceipt(path=dest, size=size)


async def create_directory(client: StoreClient, path: str) -> None:
    await client.request(DIRECTORIES["create"]["method"], DIRECTORIES["create"]["path"], json={"path": path})


async def delete_path(client: StoreClient, path: str) -> None:
    await client.request(FILES["delete"]["method"], FILES["delete"]["path"], json={"path": path})


async def download_file(
    client: StoreClient,
    path: str,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    async with client.stream(
        FILES["download"]["method"],
        FILES["download"]["path"],
        params={"path": path},
        headers={"Accept": "*/*"},
    ) as resp:
        async for chunk in resp.aiter_bytes(chunk_size):
            yield chunk
