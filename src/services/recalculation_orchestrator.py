# src/services/recalculation_orchestrator.py

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from src.core.enums.recompute_state import RecomputeState
from src.core.models.errors import LedgerError, RecomputeFailed
from src.core.models.ledger import DerivedState
from src.core.models.result import Err, Ok, Result
from src.core.models.transaction import LedgerScope
from src.logic.ledger_replayer import LedgerReplayer
from src.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)

TransitionListener = Callable[[LedgerScope, RecomputeState], None]


class ScopeLockRegistry:
    """
    One re-entrant lock per (account, instrument) scope.
    Several scopes are always taken in sorted order so two callers cannot deadlock.
    Locks are created on first use and never released, so the registry holds one
    entry per scope the process has ever touched.
    """
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[LedgerScope, threading.RLock] = {}

    def lock_for(self, scope: LedgerScope) -> threading.RLock:
        with self._guard:
            if scope not in self._locks:
                self._locks[scope] = threading.RLock()
            return self._locks[scope]

    @contextmanager
    def hold(self, scopes: Iterable[LedgerScope]) -> Iterator[None]:
        acquired = []
        try:
            for scope in sorted(set(scopes)):
                lock = self.lock_for(scope)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class RecalculationOrchestrator:
    """
    Rebuilds and commits the derived ledger state of a scope from its raw transactions.

    Every recompute walks IDLE -> RESET -> REPLAY -> COMMIT -> IDLE, or drops to ABORT
    on any failure. Nothing is written until every requested scope replayed cleanly,
    and then everything is written in one commit_derived_states() call, so readers see
    either the previous state or the new one, never a mix.

    The per-scope state map, like the lock registry, keeps an entry for every scope
    ever recomputed for the lifetime of the orchestrator.
    """
    def __init__(
        self,
        store: TransactionStore,
        replayer: Optional[LedgerReplayer] = None,
        locks: Optional[ScopeLockRegistry] = None,
        transition_listener: Optional[TransitionListener] = None,
    ):
        self._store = store
        self._replayer = replayer or LedgerReplayer()
        self._locks = locks or ScopeLockRegistry()
        self._transition_listener = transition_listener
        self._states: Dict[LedgerScope, RecomputeState] = {}
        self._states_guard = threading.Lock()

    def state_of(self, account_id: str, instrument_id: str) -> RecomputeState:
        with self._states_guard:
            return self._states.get(LedgerScope(account_id, instrument_id), RecomputeState.IDLE)

    def locked(self, *scopes: LedgerScope):
        """Serializes mutations of the given scopes; re-entrant for the holding thread."""
        return self._locks.hold(scopes)

    def recompute(
        self, account_id: str, instrument_id: str
    ) -> Result[DerivedState, LedgerError]:
        """Full rebuild of one scope. Must follow every create, edit or delete in it."""
        result = self.recompute_many([LedgerScope(account_id, instrument_id)])
        if not result.is_ok:
            return result
        return Ok(result.value[0])

    def recompute_many(
        self, scopes: Iterable[LedgerScope]
    ) -> Result[List[DerivedState], LedgerError]:
        """Rebuilds several scopes and commits them together, or none of them."""
        ordered = sorted(set(scopes))
        with self._locks.hold(ordered):
            logger.info(f"RecalculationOrchestrator: Recompute started for {[str(s) for s in ordered]}.")
            states: List[DerivedState] = []
            started: List[LedgerScope] = []
            for scope in ordered:
                started.append(scope)
                result = self._replay_scope(scope)
                if not result.is_ok:
                    self._abort(started, result)
                    return result
                states.append(result.value)

            for scope in ordered:
                self._transition(scope, RecomputeState.COMMIT)
            try:
                self._store.commit_derived_states(states)
            except Exception as e:
                logger.exception(f"RecalculationOrchestrator: Commit failed for {[str(s) for s in ordered]}.")
                failure = Err([RecomputeFailed(
                    account_id=ordered[0].account_id,
                    instrument_id=ordered[0].instrument_id,
                    error_reason=f"Commit failed: {type(e).__name__}: {e}",
                )])
                self._abort(ordered, failure)
                return failure

            for scope in ordered:
                self._transition(scope, RecomputeState.IDLE)
            logger.info(
                f"RecalculationOrchestrator: Recompute committed for {[str(s) for s in ordered]}: "
                f"{sum(len(s.lots) for s in states)} lots, {sum(len(s.sells) for s in states)} sells."
            )
            return Ok(states)

    def recompute_all(self) -> Tuple[List[DerivedState], List[LedgerError]]:
        """Replays every scope the store knows about, one commit per scope."""
        scopes = self._store.list_scopes()
        logger.info(f"RecalculationOrchestrator: Full recompute of {len(scopes)} scope(s) started.")
        recomputed: List[DerivedState] = []
        failed: List[LedgerError] = []

        for processed, scope in enumerate(scopes, start=1):
            result = self.recompute(scope.account_id, scope.instrument_id)
            if result.is_ok:
                recomputed.append(result.value)
            else:
                failed.extend(result.errors)
            if processed % 10 == 0:
                logger.info(f"RecalculationOrchestrator: Full recompute progress {processed}/{len(scopes)}.")

        logger.info(f"RecalculationOrchestrator: Full recompute finished. {len(recomputed)} committed, {len(failed)} error(s).")
        return recomputed, failed

    def _replay_scope(self, scope: LedgerScope) -> Result[DerivedState, LedgerError]:
        try:
            transactions = self._store.list_transactions(scope)
            return self._replayer.replay(
                scope, transactions, on_state=lambda state: self._transition(scope, state)
            )
        except Exception as e:
            logger.exception(f"RecalculationOrchestrator: Unexpected failure while replaying {scope}.")
            return Err([RecomputeFailed(
                account_id=scope.account_id,
                instrument_id=scope.instrument_id,
                error_reason=f"Unexpected replay error: {type(e).__name__}: {e}",
            )])

    def _abort(self, scopes: List[LedgerScope], result: Err) -> None:
        for error in result.errors:
            if isinstance(error, RecomputeFailed):
                logger.error(f"RecalculationOrchestrator: Recompute aborted for {error.account_id}/{error.instrument_id}: {error.error_reason}")
            else:
                logger.warning(f"RecalculationOrchestrator: Recompute aborted: {error.error_reason}")
        for scope in scopes:
            self._transition(scope, RecomputeState.ABORT)
            self._transition(scope, RecomputeState.IDLE)

    def _transition(self, scope: LedgerScope, state: RecomputeState) -> None:
        with self._states_guard:
            self._states[scope] = state
        logger.debug(f"RecalculationOrchestrator: {scope} -> {state.value}")
        if self._transition_listener:
            self._transition_listener(scope, state)
