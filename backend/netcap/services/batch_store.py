"""
Saved path batches, persisted per (workspace, network).

Entries are stored as one JSON list under
``capacity:path-batches:<workspace>:<network>``. Anything in that list that is
not a well-formed batch is dropped on read.
Writes go through ``update(key, mutate)``, which applies ``mutate`` to the
current value atomically (WATCH/MULTI under Redis).
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional
from urllib.parse import quote

from pydantic import ValidationError

from netcap.config import settings
from netcap.schemas.batch import SavedPathBatch, SavedPathBatchCreate

logger = logging.getLogger(__name__)

KEY_PREFIX = "capacity:path-batches"
MAX_UPDATE_RETRIES = 5

Mutator = Callable[[Optional[str]], Optional[str]]


class BatchStoreError(Exception):
    """Raised when the backing store cannot be read or written."""


def storage_key(workspace_id: str, network_ref: str) -> str:
    return f"{KEY_PREFIX}:{quote(workspace_id, safe='')}:{quote(network_ref, safe='')}"


class MemoryBatchStore:
    """Process-local store; contents are lost on restart."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def update(self, key: str, mutate: Mutator) -> None:
        # No await between read and write, so this is atomic on the event loop.
        new = mutate(self._data.get(key))
        if new is not None:
            self._data[key] = new


def _text(val) -> Optional[str]:
    if isinstance(val, bytes):
        return val.decode("utf-8")
    return val


class RedisBatchStore:
    def __init__(self, url: str):
        self.url = url

    async def get(self, key: str) -> Optional[str]:
        import redis.asyncio as aioredis
        try:
            r = aioredis.from_url(self.url, socket_connect_timeout=1)
            try:
                val = await r.get(key)
            finally:
                await r.aclose()
        except Exception as e:
            raise BatchStoreError(f"Redis read failed: {e}") from e
        return _text(val)

    async def update(self, key: str, mutate: Mutator) -> None:
        import redis.asyncio as aioredis
        from redis.exceptions import WatchError
        try:
            r = aioredis.from_url(self.url, socket_connect_timeout=1)
            try:
                async with r.pipeline(transaction=True) as pipe:
                    for _ in range(MAX_UPDATE_RETRIES):
                        try:
                            await pipe.watch(key)
                            new = mutate(_text(await pipe.get(key)))
                            if new is None:
                                await pipe.unwatch()
                                return
                            pipe.multi()
                            pipe.set(key, new)
                            await pipe.execute()
                            return
                        except WatchError:
                            logger.debug("Concurrent write on %s, retrying", key)
            finally:
                await r.aclose()
        except Exception as e:
            raise BatchStoreError(f"Redis write failed: {e}") from e
        raise BatchStoreError(f"Redis write on {key} kept conflicting")


_store = None


def get_batch_store():
    """FastAPI dependency: the configured store, created once per process."""
    global _store
    if _store is None:
        if settings.BATCH_STORE_BACKEND == "redis":
            _store = RedisBatchStore(settings.REDIS_URL)
        else:
            _store = MemoryBatchStore()
        logger.info("Saved path batches use the %s backend", settings.BATCH_STORE_BACKEND)
    return _store


def _decode(raw: Optional[str]) -> List[SavedPathBatch]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable saved batch list")
        return []
    if not isinstance(data, list):
        return []
    out = []
    for entry in data:
        try:
            batch = SavedPathBatch.model_validate(entry)
        except ValidationError:
            continue
        if batch.id.strip() and batch.name.strip() and batch.text.strip():
            out.append(batch)
    return out


def _encode(batches: List[SavedPathBatch]) -> str:
    return json.dumps([b.to_json_dict() for b in batches])


async def load_batches(store, workspace_id: str, network_ref: str) -> List[SavedPathBatch]:
    return _decode(await store.get(storage_key(workspace_id, network_ref)))


async def save_batch(store, workspace_id: str, network_ref: str,
                     body: SavedPathBatchCreate) -> SavedPathBatch:
    """Insert a batch, or replace the one with the same id. Newest first."""
    batch = SavedPathBatch(
        id=(body.id or "").strip() or str(uuid.uuid4()),
        name=body.name.strip(),
        text=body.text,
        created_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )

    def mutate(raw: Optional[str]) -> str:
        return _encode([batch] + [b for b in _decode(raw) if b.id != batch.id])

    await store.update(storage_key(workspace_id, network_ref), mutate)
    logger.info("Saved path batch %s for %s/%s", batch.id, workspace_id, network_ref)
    return batch


async def delete_batch(store, workspace_id: str, network_ref: str, batch_id: str) -> bool:
    removed = False

    def mutate(raw: Optional[str]) -> Optional[str]:
        nonlocal removed
        batches = _decode(raw)
        kept = [b for b in batches if b.id != batch_id]
        removed = len(kept) != len(batches)
        return _encode(kept) if removed else None

    await store.update(storage_key(workspace_id, network_ref), mutate)
    if removed:
        logger.info("Deleted path batch %s for %s/%s", batch_id, workspace_id, network_ref)
    return removed
