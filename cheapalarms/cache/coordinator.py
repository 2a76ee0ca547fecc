"""
Optimistic Mutation Coordinator

Each admin write operation subclasses OptimisticMutation and fills in the
hooks. One invocation runs:

    Idle -> Pending:  validate, claim the action guard, cancel in-flight
                      fetches, snapshot, apply optimistic transforms
    Pending -> Success: invalidate affected keys, build a notice
    Pending -> Failure: restore snapshots, classify and re-raise the error
    -> Idle:          release the action guard

Cancellation happens before the snapshot and the snapshot before the
optimistic write, so a rollback is exact and no late fetch can overwrite it.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from cheapalarms.cache.store import QueryCache, QueryKey, Snapshot
from cheapalarms.error_handler import (
    CheapAlarmsError,
    PartialFailure,
    ValidationError,
    classify_error,
)
from cheapalarms.notices import Notice, failure_notice, success_notice

V = TypeVar("V")
R = TypeVar("R")


class MutationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class OptimisticUpdate:
    """Transform applied to every cached entry under prefix"""

    prefix: QueryKey
    transform: Callable[[Any], Any]


@dataclass
class MutationOutcome(Generic[R]):
    result: R
    notice: Notice
    partial: Optional[PartialFailure] = None
    state: MutationState = MutationState.SUCCESS

    @property
    def is_partial(self) -> bool:
        return self.partial is not None


class OptimisticMutation(Generic[V, R]):
    """
    Base class for one write operation.

    The cache handle is passed in explicitly; nothing is looked up globally.
    Subclasses override mutate() and whichever hooks they need.
    """

    name = "mutation"
    failure_title = "Operation failed"

    def __init__(self, cache: QueryCache, client: Any):
        self.cache = cache
        self.client = client
        self.last_notice: Optional[Notice] = None
        self._in_flight: set = set()
        self._listeners: list[Callable[[MutationState, V], None]] = []

    # ========================================================================
    # Hooks
    # ========================================================================

    def validate(self, variables: V) -> None:
        """Raise ValidationError before anything else happens"""

    def guard_ids(self, variables: V) -> frozenset:
        """Targets claimed while the call is in flight"""
        return frozenset({self.name})

    def optimistic_updates(self, variables: V) -> Iterable[OptimisticUpdate]:
        return ()

    def cancel_keys(self, variables: V) -> Iterable[QueryKey]:
        return [update.prefix for update in self.optimistic_updates(variables)]

    async def mutate(self, variables: V) -> R:
        raise NotImplementedError

    def partial_failure(self, variables: V, result: R) -> Optional[PartialFailure]:
        return None

    def invalidate_keys(self, variables: V, result: Optional[R]) -> Iterable[QueryKey]:
        return self.cancel_keys(variables)

    def success_notice(
        self, variables: V, result: R, partial: Optional[PartialFailure]
    ) -> Notice:
        return success_notice("Done")

    def error_notice(self, variables: V, error: CheapAlarmsError) -> Notice:
        return failure_notice(self.failure_title, error)

    # ========================================================================
    # Protocol
    # ========================================================================

    @property
    def is_pending(self) -> bool:
        return bool(self._in_flight)

    def on_state(self, listener: Callable[[MutationState, V], None]) -> None:
        self._listeners.append(listener)

    def _transition(self, state: MutationState, variables: V) -> None:
        for listener in list(self._listeners):
            listener(state, variables)

    def _claim(self, variables: V) -> frozenset:
        ids = frozenset(self.guard_ids(variables))
        overlap = self._in_flight & ids
        if overlap:
            raise ValidationError(
                f"{self.name} is already in progress for {', '.join(sorted(map(str, overlap)))}",
                field="ids",
            )
        self._in_flight |= ids
        return ids

    async def _apply_optimistic(
        self, variables: V, applied: dict[QueryKey, tuple[Snapshot, int]]
    ) -> None:
        """
        Cancel, snapshot, then write. applied is filled with every snapshot
        before the first transform runs, so a transform that raises partway
        through still leaves a complete rollback set.
        """
        for prefix in self.cancel_keys(variables):
            await self.cache.cancel_queries(prefix)

        updates = list(self.optimistic_updates(variables))
        for update in updates:
            for snap in self.cache.snapshot(update.prefix):
                applied.setdefault(snap.key, (snap, snap.version))

        for update in updates:
            for key in self.cache.keys(update.prefix):
                if key not in applied:
                    continue
                self.cache.set_query_data(key, update.transform)
                # Version this key holds right after our optimistic write
                applied[key] = (applied[key][0], self.cache.version(key))

    def _rollback(self, applied: dict[QueryKey, tuple[Snapshot, int]]) -> None:
        for snap, version in applied.values():
            if version == snap.version:
                continue
            if not self.cache.restore(snap, expected_version=version):
                # Someone wrote after us; a refetch decides instead of our stale copy
                logging.info(
                    f"{self.name}: skipped rollback of {snap.key!r}, newer write present"
                )
                self.cache.invalidate_queries(snap.key)

    async def __call__(self, variables: V) -> MutationOutcome[R]:
        """
        Run the mutation.

        Returns:
            MutationOutcome with the backend result and a notice; a partial
            success carries the PartialFailure alongside

        Raises:
            ValidationError, RemoteError, RateLimited, NetworkError,
            PartialFailure: after the cache has been rolled back
        """
        self.validate(variables)
        ids = self._claim(variables)
        applied: dict[QueryKey, tuple[Snapshot, int]] = {}

        try:
            self._transition(MutationState.PENDING, variables)
            try:
                await self._apply_optimistic(variables, applied)
                result = await self.mutate(variables)
            except asyncio.CancelledError:
                self._rollback(applied)
                self._transition(MutationState.FAILURE, variables)
                raise
            except Exception as exc:
                self._rollback(applied)
                self._transition(MutationState.FAILURE, variables)

                error = classify_error(exc)
                if error is None:
                    raise

                self.last_notice = self.error_notice(variables, error)
                logging.warning(f"{self.name} failed: {error.message}")
                if error is exc:
                    raise
                raise error from exc

            partial = self.partial_failure(variables, result)
            for prefix in self.invalidate_keys(variables, result):
                self.cache.invalidate_queries(prefix)

            if partial is not None:
                logging.warning(
                    f"{self.name} partially failed: {partial.message}",
                    extra={"errors": partial.errors},
                )

            notice = self.success_notice(variables, result, partial)
            self.last_notice = notice
            self._transition(MutationState.SUCCESS, variables)
            return MutationOutcome(result=result, notice=notice, partial=partial)

        finally:
            self._in_flight -= ids
            self._transition(MutationState.IDLE, variables)
