"""
Swap Record Persistence

Stores swap records so a restarted process can resume in-flight swaps.
``update`` applies a status change and its accompanying fields as one
atomic write, optionally conditional on the status currently stored.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ...config import settings
from ...db import ConvexMutationError, get_convex_client
from .errors import ErrorContext, ErrorCategory, StaleRecordError, SwapError, SwapNotFoundError
from .models import IMMUTABLE_FIELDS, SwapRecord, SwapStatus

STATUS_CONFLICT = "STATUS_CONFLICT"


class SwapStoreError(SwapError):
    """The backing store could not read or write a record."""

    category = ErrorCategory.STORAGE


class SwapStore(ABC):
    """Persistence interface for swap records."""

    @abstractmethod
    async def create(self, record: SwapRecord) -> SwapRecord:
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[SwapRecord]:
        pass

    @abstractmethod
    async def update(
        self,
        record_id: str,
        status: Optional[SwapStatus] = None,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_status: Optional[SwapStatus] = None,
    ) -> SwapRecord:
        """Apply ``status`` and ``fields`` together and return the stored record.

        With ``expected_status`` the write only happens if the stored record
        is still in that status.

        Raises:
            SwapNotFoundError: No record with ``record_id``
            StaleRecordError: The stored status is not ``expected_status``
        """
        pass

    @abstractmethod
    async def list_active(self) -> List[SwapRecord]:
        """Records not in a terminal status."""
        pass

    async def close(self) -> None:
        pass


class InMemorySwapStore(SwapStore):
    """Process-local store; records are lost on restart."""

    def __init__(self) -> None:
        self._records: Dict[str, SwapRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, record: SwapRecord) -> SwapRecord:
        async with self._lock:
            if record.id in self._records:
                raise SwapStoreError(f"Swap {record.id} already exists")
            self._records[record.id] = record
            return record

    async def get(self, record_id: str) -> Optional[SwapRecord]:
        return self._records.get(record_id)

    async def update(
        self,
        record_id: str,
        status: Optional[SwapStatus] = None,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_status: Optional[SwapStatus] = None,
    ) -> SwapRecord:
        async with self._lock:
            current = _check_current(record_id, self._records.get(record_id), expected_status)
            updated = current.with_updates(status, **(fields or {}))
            self._records[record_id] = updated
            return updated

    async def list_active(self) -> List[SwapRecord]:
        return [record for record in self._records.values() if not record.is_terminal]


class JsonFileSwapStore(SwapStore):
    """
    Stores every record in one JSON file.

    Each write goes to a temporary file in the same directory which then
    replaces the original, so readers never see a partial file.
    """

    def __init__(self, path: Union[str, Path], logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)
        self._records: Optional[Dict[str, SwapRecord]] = None
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, SwapRecord]:
        if self._records is None:
            if self.path.exists():
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
                except (OSError, ValueError) as exc:
                    raise SwapStoreError(
                        f"Could not read swap store {self.path}: {exc}",
                        ErrorContext(category=ErrorCategory.STORAGE, details={"path": str(self.path)}),
                    ) from exc
                self._records = {
                    record_id: SwapRecord.from_dict(data) for record_id, data in raw.get("swaps", {}).items()
                }
                self.logger.info("Loaded %d swap records from %s", len(self._records), self.path)
            else:
                self._records = {}
        return self._records

    def _write(self, records: Dict[str, SwapRecord]) -> None:
        payload = {"swaps": {record_id: record.to_dict() for record_id, record in records.items()}}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise SwapStoreError(f"Could not write swap store {self.path}: {exc}") from exc

    async def create(self, record: SwapRecord) -> SwapRecord:
        async with self._lock:
            records = self._load()
            if record.id in records:
                raise SwapStoreError(f"Swap {record.id} already exists")
            staged = dict(records)
            staged[record.id] = record
            await asyncio.to_thread(self._write, staged)
            self._records = staged
            return record

    async def get(self, record_id: str) -> Optional[SwapRecord]:
        async with self._lock:
            return self._load().get(record_id)

    async def update(
        self,
        record_id: str,
        status: Optional[SwapStatus] = None,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_status: Optional[SwapStatus] = None,
    ) -> SwapRecord:
        async with self._lock:
            records = self._load()
            current = _check_current(record_id, records.get(record_id), expected_status)
            updated = current.with_updates(status, **(fields or {}))
            staged = dict(records)
            staged[record_id] = updated
            await asyncio.to_thread(self._write, staged)
            self._records = staged
            return updated

    async def list_active(self) -> List[SwapRecord]:
        async with self._lock:
            return [record for record in self._load().values() if not record.is_terminal]


class ConvexSwapStore(SwapStore):
    """Stores records through the Convex ``swaps:*`` functions."""

    def __init__(
        self,
        convex_client: Any,  # Type: ConvexClient from swapflow.db.convex_client
        logger: Optional[logging.Logger] = None,
    ):
        self.convex = convex_client
        self.logger = logger or logging.getLogger(__name__)

    async def create(self, record: SwapRecord) -> SwapRecord:
        await self.convex.create_swap(record.to_dict())
        return record

    async def get(self, record_id: str) -> Optional[SwapRecord]:
        data = await self.convex.get_swap(record_id)
        return SwapRecord.from_dict(data) if data else None

    async def update(
        self,
        record_id: str,
        status: Optional[SwapStatus] = None,
        fields: Optional[Dict[str, Any]] = None,
        *,
        expected_status: Optional[SwapStatus] = None,
    ) -> SwapRecord:
        frozen = IMMUTABLE_FIELDS.intersection(fields or {})
        if frozen:
            raise ValueError(f"Swap fields {sorted(frozen)} cannot change after creation")
        try:
            data = await self.convex.update_swap(
                record_id,
                status.value if status is not None else None,
                _fields_to_convex(fields or {}),
                expected_status=expected_status.value if expected_status is not None else None,
            )
        except ConvexMutationError as exc:
            # swaps:update throws ConvexError({code: "STATUS_CONFLICT", status}) on a mismatch
            if exc.data.get("code") != STATUS_CONFLICT:
                raise
            raise StaleRecordError(record_id, expected_status, exc.data.get("status")) from exc
        if not data:
            data = await self.convex.get_swap(record_id)
        if not data:
            raise SwapNotFoundError(record_id)
        return SwapRecord.from_dict(data)

    async def list_active(self) -> List[SwapRecord]:
        rows = await self.convex.list_active_swaps()
        return [SwapRecord.from_dict(row) for row in rows]

    async def close(self) -> None:
        await self.convex.close()


def _check_current(
    record_id: str,
    current: Optional[SwapRecord],
    expected_status: Optional[SwapStatus],
) -> SwapRecord:
    if current is None:
        raise SwapNotFoundError(record_id)
    if expected_status is not None and current.status != expected_status:
        raise StaleRecordError(record_id, expected_status, current.status)
    return current


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _fields_to_convex(fields: Dict[str, Any]) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}
    for name, value in fields.items():
        if name == "route" and value is not None:
            value = value.model_dump(by_alias=True, exclude_none=True)
        converted[_camel(name)] = value
    return converted


def create_swap_store(
    backend: Optional[str] = None,
    path: Optional[Union[str, Path]] = None,
) -> SwapStore:
    """Build the store named by ``backend`` (default: settings.swap_store_backend)."""
    backend = (backend or settings.swap_store_backend).lower()
    if backend == "memory":
        return InMemorySwapStore()
    if backend == "file":
        return JsonFileSwapStore(path or settings.swap_store_path)
    if backend == "convex":
        return ConvexSwapStore(get_convex_client())
    raise ValueError(f"Unknown swap store backend {backend!r} (expected memory, file or convex)")
