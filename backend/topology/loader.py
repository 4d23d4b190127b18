from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable

import httpx

from topology.decode import parse_topology
from topology.types import Topology

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


async def fetch_bytes(path: str) -> bytes:
    """
    Default fetcher: http(s) URLs via httpx, anything else from disk.
    """
    if path.startswith(("http://", "https://")):
        # No timeout: a stalled fetch leaves the map absent until it resolves.
        async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
            resp = await client.get(path)
            resp.raise_for_status()
            return resp.content
    return await asyncio.to_thread(Path(path).read_bytes)


class TopologyLoader:
    """
    Fetches and caches boundary topologies by path.

    - Concurrent `load()` calls for one path share a single in-flight fetch.
    - Successful results are cached for the loader's lifetime.
    - Failures are logged and resolve to None (not cached).
    """

    def __init__(self, *, fetch: Fetcher | None = None):
        self._fetch = fetch or fetch_bytes
        self._cache: dict[str, Topology] = {}
        self._inflight: dict[str, asyncio.Future[Topology | None]] = {}
        self.fetch_count = 0

    def cached(self, path: str) -> Topology | None:
        return self._cache.get(path)

    async def load(self, path: str) -> Topology | None:
        cached = self._cache.get(path)
        if cached is not None:
            return cached

        pending = self._inflight.get(path)
        if pending is None:
            pending = asyncio.ensure_future(self._load_uncached(path))
            self._inflight[path] = pending
            pending.add_done_callback(lambda _f: self._inflight.pop(path, None))
        # Shield: one cancelled waiter must not cancel the shared fetch.
        return await asyncio.shield(pending)

    async def _load_uncached(self, path: str) -> Topology | None:
        self.fetch_count += 1
        try:
            raw = await self._fetch(path)
            topology = parse_topology(json.loads(raw))
        except Exception:
            logger.warning("Failed to load map geometry from %s", path, exc_info=True)
            return None
        self._cache[path] = topology
        logger.debug("Loaded map geometry from %s (%d arcs)", path, len(topology.arcs))
        return topology
