"""Run one operation across several backends concurrently."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from updatekit.core import dispatch
from updatekit.core.config import Config
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate

log = get_logger(__name__)

T = TypeVar("T")


class Repository:
    """Fan operations out over the configured backends.

    Each backend runs in its own task. A backend that raises is logged
    and gets an empty slot in the result, never affecting the others.
    """

    def __init__(self, config: Config, kinds: Optional[Iterable[BackendKind]] = None) -> None:
        self.config = config
        self.kinds: List[BackendKind] = list(kinds) if kinds is not None else config.configured_kinds()

    async def _gather(
        self,
        operation: str,
        call: Callable[[BackendKind], Awaitable[T]],
        empty: Callable[[], T],
    ) -> Dict[BackendKind, T]:
        start = time.perf_counter()
        log.info("fanout_start", operation=operation, backends=[k.value for k in self.kinds])

        results: List[Any] = await asyncio.gather(
            *(call(kind) for kind in self.kinds), return_exceptions=True
        )

        out: Dict[BackendKind, T] = {}
        failed = 0
        for kind, result in zip(self.kinds, results):
            if isinstance(result, Exception):
                failed += 1
                log.warning(
                    "backend_failed",
                    operation=operation,
                    backend=kind.value,
                    error=str(result),
                    error_type=type(result).__name__
                )
                out[kind] = empty()
            else:
                out[kind] = result

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info(
            "fanout_complete",
            operation=operation,
            backends=len(self.kinds),
            failed=failed,
            duration_ms=duration_ms,
        )
        return out

    async def updates_by_backend(self) -> Dict[BackendKind, List[PackageUpdate]]:
        return await self._gather(
            "list_updates", lambda k: dispatch.list_updates(k, self.config), list
        )

    async def installed_by_backend(self) -> Dict[BackendKind, List[PackageInfo]]:
        return await self._gather(
            "list_installed", lambda k: dispatch.list_installed(k, self.config), list
        )

    async def installed_counts(self) -> Dict[BackendKind, int]:
        return await self._gather(
            "count_installed", lambda k: dispatch.count_installed(k, self.config), int
        )

    async def search_all(self, query: str) -> Dict[BackendKind, List[PackageInfo]]:
        return await self._gather(
            "search_package", lambda k: dispatch.search_package(k, self.config, query), list
        )
