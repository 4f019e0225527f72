"""Activity aggregation: concurrent fan-out to the source readers for one principal."""

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from principal_activity.errors import Cancelled, PrincipalNotFound, SourceUnavailable
from principal_activity.models.activity import RawActivityBundle
from principal_activity.sources.base import BaseSourceReader

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[Any]]
ReadCall = Callable[[], Awaitable[Any]]

# Sentinel so callers can pass timeout=None to disable the default deadline
DEFAULT_TIMEOUT: Any = object()


async def _cancel_all(tasks: list[asyncio.Future]) -> None:
    """Cancel tasks and wait for them to unwind."""
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class ActivityAggregator:
    """
    Builds a RawActivityBundle for one principal.
    The principal lookup runs first (unknown id -> PrincipalNotFound); the record
    reads then run concurrently and the call fails fast on the first hard error.
    A partial bundle is never returned.
    """

    def __init__(
        self,
        reader: BaseSourceReader,
        *,
        timeout: Optional[float] = None,
        retry_backoff_seconds: float = 0.25,
    ):
        self._reader = reader
        self._timeout = timeout
        self._retry_backoff = retry_backoff_seconds

    def _reads(self) -> dict[str, FetchFn]:
        return {
            "contacts": self._reader.fetch_contacts,
            "interactions": self._reader.fetch_interactions,
            "opportunities": self._reader.fetch_opportunities,
            "product_associations": self._reader.fetch_product_associations,
            "distributor_relationships": self._reader.fetch_distributor_relationships,
        }

    async def aggregate(
        self,
        principal_id: str,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RawActivityBundle:
        """
        Fetch everything recorded for a principal.
        timeout: deadline in seconds for the whole call (defaults to the aggregator's).
        cancel_event: when set by the caller, in-flight reads are cancelled.
        Raises PrincipalNotFound, SourceUnavailable or Cancelled.
        """
        if timeout is DEFAULT_TIMEOUT:
            timeout = self._timeout

        started = time.perf_counter()
        work = asyncio.ensure_future(self._collect(principal_id))
        waiters: list[asyncio.Future] = [work]
        cancel_waiter: Optional[asyncio.Future] = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.append(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await _cancel_all(waiters)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if work not in done:
            await _cancel_all([work])
            if cancel_waiter is not None and cancel_waiter in done:
                reason = "cancelled by caller"
            else:
                reason = f"exceeded deadline of {timeout}s"
            logger.warning("Aggregation for %s %s", principal_id, reason)
            raise Cancelled(principal_id, reason)

        bundle = work.result()
        logger.debug(
            "Aggregated principal %s in %.1f ms", principal_id, (time.perf_counter() - started) * 1000
        )
        return bundle

    async def read_principal_ids(self) -> list[str]:
        """
        List every principal id with the same retry and deadline as a principal's reads.
        Raises SourceUnavailable or Cancelled.
        """
        try:
            return await asyncio.wait_for(
                self._read("principal_ids", self._reader.fetch_all_principal_ids, None),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            reason = f"exceeded deadline of {self._timeout}s"
            logger.warning("Principal listing %s", reason)
            raise Cancelled(None, reason) from None

    async def _collect(self, principal_id: str) -> RawActivityBundle:
        principal = await self._read(
            "principal", functools.partial(self._reader.fetch_principal, principal_id), principal_id
        )
        if principal is None:
            raise PrincipalNotFound(principal_id)

        reads = self._reads()
        tasks = {
            name: asyncio.ensure_future(
                self._read(name, functools.partial(fetch, principal_id), principal_id)
            )
            for name, fetch in reads.items()
        }
        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await _cancel_all(list(tasks.values()))
            raise

        pending = [t for t in tasks.values() if not t.done()]
        if pending:
            await _cancel_all(pending)
        # Report failures in a fixed source order
        for name, task in tasks.items():
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

        results = {name: task.result() for name, task in tasks.items()}
        return RawActivityBundle(principal=principal, **results)

    async def _read(self, source: str, call: ReadCall, principal_id: Optional[str]) -> Any:
        """Run one source read, retrying once after a backoff before giving up."""
        try:
            return await call()
        except Exception as e:
            logger.warning(
                "Read of %s for %s failed, retrying in %.2fs: %s",
                source,
                principal_id or "all principals",
                self._retry_backoff,
                e,
            )
        await asyncio.sleep(self._retry_backoff)
        try:
            return await call()
        except Exception as e:
            raise SourceUnavailable(source, principal_id, e) from e
