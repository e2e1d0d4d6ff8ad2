# src/logic/ledger_replayer.py

import logging
from decimal import Decimal, InvalidOperation, localcontext
from typing import Callable, List, Optional, Sequence

from src.core.config.settings import settings
from src.core.enums.oversell_policy import OverSellPolicy
from src.core.enums.recompute_state import RecomputeState
from src.core.models.errors import LedgerError, OverSellWarning, RecomputeFailed
from src.core.models.ledger import DerivedState, LotState, SellResult
from src.core.models.result import Err, Ok, Result
from src.core.models.transaction import LedgerScope, Transaction
from src.logic.consistency_guard import ConsistencyGuard
from src.logic.cost_objects import Allocation, Lot, SellComputation
from src.logic.lot_allocator import LotAllocator
from src.logic.pnl_calculator import RealizedPnLCalculator
from src.logic.risk_calculator import RiskMultipleCalculator
from src.logic.rounding import to_currency, to_ratio
from src.logic.sorter import TransactionSorter
from src.logic.validator import validate_transaction

logger = logging.getLogger(__name__)

StateListener = Callable[[RecomputeState], None]


class LedgerReplayer:
    """
    Rebuilds the derived state of one scope from its raw transactions.

    replay() is a pure function of its input snapshot: it builds fresh working lots
    from the BUYs, walks the SELLs in chronological order, checks the invariants and
    returns a rounded, immutable DerivedState. Nothing is persisted here.
    """
    def __init__(
        self,
        allocator: Optional[LotAllocator] = None,
        pnl_calculator: Optional[RealizedPnLCalculator] = None,
        risk_calculator: Optional[RiskMultipleCalculator] = None,
        consistency_guard: Optional[ConsistencyGuard] = None,
        sorter: Optional[TransactionSorter] = None,
        oversell_policy: Optional[OverSellPolicy] = None,
        decimal_precision: Optional[int] = None,
    ):
        self._allocator = allocator or LotAllocator()
        self._pnl_calculator = pnl_calculator or RealizedPnLCalculator()
        self._risk_calculator = risk_calculator or RiskMultipleCalculator()
        self._consistency_guard = consistency_guard or ConsistencyGuard()
        self._sorter = sorter or TransactionSorter()
        self._oversell_policy = oversell_policy or settings.OVERSELL_POLICY
        self._decimal_precision = decimal_precision or settings.DECIMAL_PRECISION

    @property
    def oversell_policy(self) -> OverSellPolicy:
        return self._oversell_policy

    def replay(
        self,
        scope: LedgerScope,
        transactions: Sequence[Transaction],
        on_state: Optional[StateListener] = None,
    ) -> Result[DerivedState, LedgerError]:
        notify = on_state or (lambda state: None)
        notify(RecomputeState.RESET)

        validation_errors = [
            error for error in (validate_transaction(txn, scope=scope) for txn in transactions) if error
        ]
        if validation_errors:
            logger.info(f"LedgerReplayer: {len(validation_errors)} invalid transaction(s) in {scope}; nothing replayed.")
            return Err(validation_errors)

        with localcontext() as ctx:
            ctx.prec = self._decimal_precision

            buys, sells = self._sorter.split_buys_and_sells(transactions)
            lots = self._reset(buys)
            logger.debug(f"LedgerReplayer: Reset {scope} to {len(lots)} lots, {len(sells)} sells to replay.")

            notify(RecomputeState.REPLAY)
            computations: List[SellComputation] = []
            for sell in sells:
                allocated = self._allocator.allocate(sell, lots)
                if not allocated.is_ok:
                    return allocated
                computations.append(self._compute_sell(sell, allocated.value, lots))
                # Mutate the working lots only once the sell is fully computed.
                self._allocator.apply(allocated.value, lots)

            warnings = [c.over_sell_warning for c in computations if c.over_sell_warning]
            if warnings and self._oversell_policy == OverSellPolicy.REJECT:
                logger.warning(f"LedgerReplayer: Rejecting replay of {scope}: {len(warnings)} over-sell(s) under REJECT policy.")
                return Err(warnings)

            violations = self._consistency_guard.check(lots, computations)
            if violations:
                return Err([RecomputeFailed(
                    account_id=scope.account_id,
                    instrument_id=scope.instrument_id,
                    error_reason=f"{len(violations)} ledger invariant violation(s) after replay.",
                    violations=violations,
                )])

            try:
                state = self._to_derived_state(scope, lots, computations, warnings)
            except InvalidOperation as e:
                # quantize() needs more digits than the context precision allows
                logger.error(f"LedgerReplayer: Could not round derived state of {scope}: {type(e).__name__}.")
                return Err([RecomputeFailed(
                    account_id=scope.account_id,
                    instrument_id=scope.instrument_id,
                    error_reason=f"Derived values of {scope} exceed the configured decimal precision ({self._decimal_precision} digits).",
                )])
            return Ok(state)

    def _reset(self, buys: Sequence[Transaction]) -> List[Lot]:
        """Re-derives every lot from its originating BUY with nothing consumed."""
        lots = []
        for buy in buys:
            commission = buy.commission if buy.commission is not None else Decimal(0)
            unit_cost = (buy.price * buy.quantity + commission) / buy.quantity
            lots.append(Lot(
                transaction_id=buy.transaction_id,
                transaction_date=buy.transaction_date,
                quantity=buy.quantity,
                unit_cost=unit_cost,
                entry_price=buy.price,
                stop_loss_price=buy.stop_loss_price,
                take_profit_price=buy.take_profit_price,
            ))
        return lots

    def _compute_sell(self, sell: Transaction, allocation: Allocation, lots: Sequence[Lot]) -> SellComputation:
        warning = None
        estimate = Decimal(0)
        if allocation.is_over_sell:
            warning = OverSellWarning(
                transaction_id=sell.transaction_id,
                sell_quantity=allocation.sell_quantity,
                matched_quantity=allocation.matched_quantity,
                unmatched_quantity=allocation.unmatched_quantity,
                error_reason=(f"Sell quantity ({allocation.sell_quantity}) exceeds open lots "
                              f"({allocation.matched_quantity}) for instrument '{sell.instrument_id}' "
                              f"in account '{sell.account_id}'."),
            )
            estimate = self._estimate_unmatched_cost(allocation)

        pnl = self._pnl_calculator.calculate(sell, allocation, estimated_unmatched_cost=estimate)
        risk = self._risk_calculator.calculate(allocation, lots, pnl.realized_pnl)
        return SellComputation(
            sell=sell,
            allocation=allocation,
            proceeds=pnl.proceeds,
            cost_basis=pnl.cost_basis,
            estimated_unmatched_cost=estimate,
            realized_pnl=pnl.realized_pnl,
            initial_risk_amount=risk.initial_risk_amount,
            r_multiple=risk.r_multiple,
            over_sell_warning=warning,
        )

    def _estimate_unmatched_cost(self, allocation: Allocation) -> Decimal:
        if self._oversell_policy != OverSellPolicy.PROPORTIONAL_ESTIMATE:
            return Decimal(0)
        if allocation.matched_quantity <= Decimal(0):
            return Decimal(0)
        average_unit_cost = allocation.total_cost_basis / allocation.matched_quantity
        return average_unit_cost * allocation.unmatched_quantity

    def _to_derived_state(
        self,
        scope: LedgerScope,
        lots: Sequence[Lot],
        computations: Sequence[SellComputation],
        warnings: Sequence[OverSellWarning],
    ) -> DerivedState:
        """Rounds the working state once, at the point it becomes committable."""
        lot_states = [
            LotState(
                transaction_id=lot.transaction_id,
                transaction_date=lot.transaction_date,
                original_quantity=lot.original_quantity,
                remaining_quantity=lot.remaining_quantity,
                unit_cost=to_ratio(lot.unit_cost),
                entry_price=lot.entry_price,
                stop_loss_price=lot.stop_loss_price,
                take_profit_price=lot.take_profit_price,
                risk_per_share=to_ratio(lot.risk_per_share),
                initial_risk_amount=to_currency(lot.initial_risk_amount),
                risk_reward_ratio=to_ratio(self._risk_calculator.risk_reward_ratio(lot)),
            )
            for lot in lots
        ]
        sell_results = [
            SellResult(
                transaction_id=c.sell.transaction_id,
                transaction_date=c.sell.transaction_date,
                quantity=c.sell.quantity,
                proceeds=to_currency(c.proceeds),
                matched_quantity=c.allocation.matched_quantity,
                unmatched_quantity=c.allocation.unmatched_quantity,
                cost_basis=to_currency(c.cost_basis),
                estimated_unmatched_cost=to_currency(c.estimated_unmatched_cost),
                realized_pnl=to_currency(c.realized_pnl),
                initial_risk_amount=to_currency(c.initial_risk_amount),
                r_multiple=to_ratio(c.r_multiple),
                over_sell_warning=c.over_sell_warning,
            )
            for c in computations
        ]

        open_quantity = sum((lot.remaining_quantity for lot in lots), Decimal(0))
        open_cost = sum((lot.remaining_quantity * lot.unit_cost for lot in lots), Decimal(0))
        average_open_cost = open_cost / open_quantity if open_quantity > Decimal(0) else None
        total_realized = sum((c.realized_pnl for c in computations), Decimal(0))

        logger.debug(f"LedgerReplayer: {scope} replayed. Open quantity: {open_quantity}, realized P&L: {total_realized}.")
        return DerivedState(
            account_id=scope.account_id,
            instrument_id=scope.instrument_id,
            lots=lot_states,
            sells=sell_results,
            open_quantity=open_quantity,
            open_cost_basis=to_currency(open_cost),
            average_open_cost=to_ratio(average_open_cost),
            total_realized_pnl=to_currency(total_realized),
            warnings=list(warnings),
        )
