"""Schema cache with single-flight introspection."""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, TYPE_CHECKING

from graphql import GraphQLSchema

from .catalog import register_names
from .config import DEFAULT_CACHE_TTL
from .errors import SchemaUnavailable
from .registry import NameRegistry

if TYPE_CHECKING:
    from .base import GraphQLSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaSnapshot:
    """One fetched generation of the remote type system."""
    schema: GraphQLSchema
    fetched_at: float
    expires_at: float
    generation: int

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class SchemaService:
    """
    Owns the cached schema, its expiry, the in-flight fetch and the name registry.

    Concurrent callers during a fetch await the same task, so at most one introspection
    request is outstanding. A failed fetch is not cached; the next caller retries.
    """

    def __init__(
        self,
        source: "GraphQLSource",
        ttl: float = DEFAULT_CACHE_TTL,
        registry: Optional[NameRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            source: Endpoint used for introspection
            ttl: Schema cache time-to-live in seconds
            registry: Name registry to rebuild on every refresh
            clock: Monotonic time source, replaceable in tests
        """
        self.source = source
        self.ttl = ttl
        self.registry = registry if registry is not None else NameRegistry()
        self._clock = clock
        self._snapshot: Optional[SchemaSnapshot] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def current(self) -> Optional[SchemaSnapshot]:
        """The cached snapshot if it has not expired."""
        if self._snapshot is None or self._snapshot.is_expired(self._clock()):
            return None
        return self._snapshot

    @property
    def last_snapshot(self) -> Optional[SchemaSnapshot]:
        """Most recent snapshot even if expired. For diagnostics only."""
        return self._snapshot

    async def get_schema(self) -> SchemaSnapshot:
        """
        Return a valid snapshot, fetching it if needed.

        Raises:
            SchemaUnavailable: If introspection fails
        """
        if self._in_flight is not None:
            logger.info("Schema fetch already in progress, waiting for it to complete")
            return await asyncio.shield(self._in_flight)

        snapshot = self.current
        if snapshot is not None:
            logger.debug("Using cached schema")
            return snapshot

        self._in_flight = asyncio.create_task(self._refresh())
        return await asyncio.shield(self._in_flight)

    def invalidate(self) -> None:
        """Expire the cached snapshot so the next caller refetches."""
        if self._snapshot is not None:
            self._snapshot = replace(self._snapshot, expires_at=self._clock())

    async def _refresh(self) -> SchemaSnapshot:
        try:
            logger.info(f"Fetching GraphQL schema from {self.source.get_endpoint()}")
            start_time = time.perf_counter()
            try:
                schema = await self.source.introspect()
            except Exception as e:
                logger.error(f"Error fetching schema: {e}")
                raise SchemaUnavailable(f"Schema not available: {e}") from e

            duration = (time.perf_counter() - start_time) * 1000
            logger.info(f"Schema fetched successfully in {duration:.0f}ms")

            now = self._clock()
            self._generation += 1
            snapshot = SchemaSnapshot(
                schema=schema,
                fetched_at=now,
                expires_at=now + self.ttl,
                generation=self._generation,
            )
            self._snapshot = snapshot

            # Names are only valid for the generation that produced them
            self.registry.clear()
            register_names(schema, self.registry)
            return snapshot
        finally:
            self._in_flight = None
