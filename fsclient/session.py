import asyncio
import os
import tempfile
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

from . import api
from .client import StoreClient
from .errors import FileStoreError, PolicyViolation
from .models import (
    BatchResult,
    Err,
    FileEntry,
    Ok,
    Result,
    SessionState,
    UploadCandidate,
    UploadReceipt,
    candidates_from_directory,
)
from .policy import UploadPolicy, validate_upload
from .utils import get_logger, join_path, parent_path

Listener = Callable[[SessionState], None]


class FileSession:
    """Owns the browsing state of one session against the remote store.

    Every operation catches its own failures and reports them through the
    ``error`` field and an ``Err`` result; nothing raises to the caller.
    ``state`` is an immutable snapshot, replaced as a whole on every change.

    Listing commits are ordered by request number: once a newer listing
    request has been issued, an older response is dropped whether it succeeded
    or failed, so the most recently issued navigation wins even when responses
    arrive out of order.
    """

    def __init__(self, client: StoreClient, policy: Optional[UploadPolicy] = None) -> None:
        self._client = client
        self._policy = policy or UploadPolicy()
        self._state = SessionState()
        self._listeners: List[Listener] = []
        self._in_flight = 0
        self._request_seq = 0
        self.logger = get_logger("fsclient.session")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def policy(self) -> UploadPolicy:
        return self._policy

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                self.logger.exception("Session listener %r failed", listener)

    @contextmanager
    def _round_trip(self) -> Iterator[None]:
        self._in_flight += 1
        if not self._state.loading:
            self._update(loading=True)
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._update(loading=False)

    def _describe(self, exc: Exception, fallback: str) -> Tuple[str, str]:
        if isinstance(exc, FileStoreError):
            self.logger.info("%s: %s", fallback, exc.message)
            return exc.message, exc.kind
        self.logger.exception(fallback)
        return fallback, "error"

    def _fail(self, exc: Exception, fallback: str) -> Err:
        message, kind = self._describe(exc, fallback)
        self._update(error=message)
        return Err(message, kind)

    # ---------- listing ----------

    async def fetch_listing(self, path: str = "") -> Result[List[FileEntry]]:
        return await self._fetch(path)

    async def navigate_to(self, path: str) -> Result[List[FileEntry]]:
        return await self._fetch(path)

    async def go_up(self) -> Result[List[FileEntry]]:
        current = self._state.current_path
        if not current:
            return Ok(list(self._state.entries))
        return await self._fetch(parent_path(current))

    async def refresh(self) -> Result[List[FileEntry]]:
        return await self._fetch(self._state.current_path)

    async def _fetch(self, path: str, clear_error: bool = True) -> Result[List[FileEntry]]:
        self._request_seq += 1
        seq = self._request_seq
        with self._round_trip():
            try:
                entries = await api.list_files(self._client, path)
            except Exception as exc:
                if seq < self._request_seq:
                    message, kind = self._describe(exc, "Failed to fetch files")
                    self.logger.debug("Dropping failure of superseded listing #%s for %r", seq, path)
                    return Err(message, kind)
                return self._fail(exc, "Failed to fetch files")
            if seq < self._request_seq:
                self.logger.debug(
                    "Dropping stale listing #%s for %r (latest #%s)", seq, path, self._request_seq
                )
                return Ok(entries)
            changes = {"current_path": path, "entries": tuple(entries)}
            if clear_error:
                changes["error"] = None
            self._update(**changes)
            self.logger.debug("Listing #%s committed: %r (%d entries)", seq, path, len(entries))
            return Ok(entries)

    # ---------- uploads ----------

    def _on_progress(self, sent: int, total: int) -> None:
        percent = 100 if total <= 0 else min(100, max(0, sent * 100 // total))
        if percent != self._state.upload_progress:
            self._update(upload_progress=percent)

    async def _upload_one(
        self,
        candidate: UploadCandidate,
        path: str,
        clear_error: bool = True,
    ) -> Result[UploadReceipt]:
        try:
            validate_upload(candidate, self._policy)
        except PolicyViolation as exc:
            self.logger.info("Rejected %r (%s): %s", candidate.name, exc.rule, exc.message)
            self._update(error=exc.message)
            return Err(exc.message, exc.kind)

        with self._round_trip():
            self._update(upload_progress=0)
            try:
                receipt = await api.upload_file(self._client, candidate, path, on_progress=self._on_progress)
            except Exception as exc:
                return self._fail(exc, "Upload failed")
            finally:
                if self._state.upload_progress != 0:
                    self._update(upload_progress=0)
            if clear_error and self._state.error is not None:
                self._update(error=None)
            self.logger.info("Uploaded %s (%d bytes)", receipt.path, receipt.size)
            return Ok(receipt)

    async def upload_file(self, candidate: UploadCandidate, path: Optional[str] = None) -> Result[UploadReceipt]:
        target = self._state.current_path if path is None else path
        result = await self._upload_one(candidate, target)
        if isinstance(result, Ok):
            await self.refresh()
        return result

    async def upload_many(self, candidates: Iterable[UploadCandidate], path: Optional[str] = None) -> BatchResult:
        target = self._state.current_path if path is None else path
        batch = BatchResult()
        with self._round_trip():
            for candidate in candidates:
                batch.results.append(await self._upload_one(candidate, target, clear_error=False))
            await self._fetch(self._state.current_path, clear_error=batch.failed == 0)
        self.logger.info("Batch upload to %r: %d ok, %d failed", target, batch.succeeded, batch.failed)
        return batch

    async def upload_tree(
        self,
        local_dir: Union[str, Path],
        path: Optional[str] = None,
    ) -> Union[BatchResult, Err]:
        try:
            candidates = candidates_from_directory(local_dir)
        except OSError as exc:
            message = f"Cannot read folder {local_dir}: {exc.strerror or exc}"
            self.logger.info(message)
            self._update(error=message)
            return Err(message, "local")
        return await self.upload_many(candidates, path)

    # ---------- mutations ----------

    async def create_directory(self, name: str) -> Result[str]:
        path = join_path(self._state.current_path, name)
        with self._round_trip():
            try:
                await api.create_directory(self._client, path)
            except Exception as exc:
                return self._fail(exc, "Failed to create directory")
            await self.refresh()
        return Ok(path)

    async def delete_path(self, path: str) -> Result[str]:
        with self._round_trip():
            try:
                await api.delete_path(self._client, path)
            except Exception as exc:
                return self._fail(exc, "Failed to delete item")
            await self.refresh()
        return Ok(path)

    def clear_error(self) -> None:
        if self._state.error is not None:
            self._update(error=None)

    # ---------- reads without listing changes ----------

    async def stat(self, path: str) -> Result[FileEntry]:
        with self._round_trip():
            try:
                entry = await api.stat_path(self._client, path)
            except Exception as exc:
                return self._fail(exc, "Failed to get file info")
            if self._state.error is not None:
                self._update(error=None)
            return Ok(entry)

    async def download_to(self, path: str, dest: Union[str, Path]) -> Result[Path]:
        target = Path(dest)
        with self._round_trip():
            # Bytes land in a sibling temp file; the destination is only replaced on success.
            partial: Optional[str] = None
            try:
                fd, partial = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
                with os.fdopen(fd, "wb") as handle:
                    async for chunk in api.download_file(self._client, path):
                        await asyncio.to_thread(handle.write, chunk)
                os.replace(partial, target)
            except Exception as exc:
                if partial is not None:
                    Path(partial).unlink(missing_ok=True)
                return self._fail(exc, "Failed to download file")
            if self._state.error is not None:
                self._update(error=None)
            return Ok(target)
