"""Greedy blend allocation with rejection recovery and forced top-up.

One call to ``allocate`` handles one product-size partition. All running
sums live in a ``BlendState`` created for that call, so partitions never
share state and repeated runs give identical ledgers.
"""

from __future__ import annotations

import logging

from iron_blender.models import (
    PARAMETERS,
    Allocation,
    AllocationStatus,
    BlendSummary,
    Chemistry,
    Rejection,
)

logger = logging.getLogger(__name__)


class BlendState:
    """Running tonnage and weighted sums for one allocation run."""

    def __init__(self, lots, target):
        self.lots = list(lots)
        self.target = target
        self.remaining = target
        self.tonnage = 0.0
        self.sums = dict.fromkeys(PARAMETERS, 0.0)
        self.allocated = [0.0] * len(self.lots)
        self.ledger: list[Allocation] = []
        self.rejections: list[Rejection] = []
        self.recovered: set[int] = set()

    def candidate(self, lot, take):
        total = self.tonnage + take
        return Chemistry(**{k: (self.sums[k] + take * lot.grade(k)) / total for k in PARAMETERS})

    def commit(self, index, take, status):
        lot = self.lots[index]
        for k in PARAMETERS:
            self.sums[k] += take * lot.grade(k)
        self.tonnage += take
        self.remaining -= take
        self.allocated[index] += take
        self.ledger.append(Allocation.from_lot(lot, take, status, index))

    def pending_rejections(self):
        return [r for r in self.rejections if r.index not in self.recovered]


# --------------- Pass 1: greedy by Fe ---------------
def greedy_order(lots):
    # sorted() is stable, so equal Fe keeps input order.
    return sorted(range(len(lots)), key=lambda i: -lots[i].fe)


def greedy_pass(state, specs):
    for i in greedy_order(state.lots):
        if state.remaining <= 0:
            break
        lot = state.lots[i]
        take = min(lot.tonnage, state.remaining)
        if take <= 0:
            continue
        cand = state.candidate(lot, take)
        if specs.accepts(cand):
            state.commit(i, take, AllocationStatus.ACCEPTED)
        else:
            rejection = Rejection(index=i, lot=lot, candidate=cand)
            state.rejections.append(rejection)
            logger.debug(
                "Rejected %s (%.2ft): %s vs Fe min=%s%%, SiO2 max=%s%%, Al2O3 max=%s%%, P max=%s%%",
                lot.lot_id, take, rejection.reason, specs.fe_min, specs.sio2_max, specs.al_max, specs.p_max,
            )
    return state


# --------------- Pass 2: weighted-average recovery ---------------
def recovery_pass(state, specs):
    """Retry rejected lots against the running blend.

    Only Fe and SiO2 are re-checked here; Al2O3 and P are not. Lots that
    still fail stay queued for the forced pass.
    """
    if state.remaining <= 0 or not state.rejections:
        return state
    logger.info("Attempting to recover %d rejected lots with weighted average compensation", len(state.rejections))
    for rejection in state.rejections:
        if state.remaining <= 0:
            break
        lot = rejection.lot
        take = min(lot.tonnage, state.remaining)
        cand = state.candidate(lot, take)
        if specs.accepts_fe_sio2(cand):
            state.commit(rejection.index, take, AllocationStatus.RECOVERED)
            state.recovered.add(rejection.index)
            logger.info(
                "Recovered %s: %.2ft with weighted avg Fe=%.3f%%, SiO2=%.3f%%",
                lot.lot_id, take, cand.fe, cand.sio2,
            )
        else:
            logger.debug("Could not recover %s: Fe=%.3f%%, SiO2=%.3f%%", lot.lot_id, cand.fe, cand.sio2)
    return state


# --------------- Pass 3: forced top-up ---------------
def forced_pass(state):
    if state.remaining <= 0 or not state.rejections:
        return state
    logger.warning("Force allocating remaining %.2ft from rejected lots", state.remaining)
    for rejection in state.pending_rejections():
        if state.remaining <= 0:
            break
        i = rejection.index
        take = min(rejection.lot.tonnage - state.allocated[i], state.remaining)
        if take > 0:
            state.commit(i, take, AllocationStatus.FORCED)
            logger.warning("Forced %s: %.2ft (specs exceeded)", rejection.lot.lot_id, take)
    return state


# --------------- Aggregation ---------------
def weighted_average(lots):
    total = sum(lot.tonnage for lot in lots)
    if total <= 0:
        return Chemistry(0.0, 0.0, 0.0, 0.0), 0.0
    return Chemistry(**{k: sum(lot.tonnage * lot.grade(k) for lot in lots) / total for k in PARAMETERS}), total


def aggregate(state, specs, product_size):
    used_fallback = state.tonnage <= 0
    if used_fallback:
        # Nothing allocated: report the whole partition so a summary always exists.
        chem, _ = weighted_average(state.lots)
        logger.warning("No tonnage allocated for %s; reporting full lot-set average", product_size)
    else:
        chem = Chemistry(**{k: state.sums[k] / state.tonnage for k in PARAMETERS})

    ledger = tuple(state.ledger)
    return BlendSummary(
        product_size=product_size,
        chemistry=chem,
        total_allocated=state.tonnage,
        target_tonnage=state.target,
        specs=specs,
        met_specs=specs.met(chem),
        rejected_count=len(state.rejections),
        recovered_count=sum(1 for a in ledger if a.status is AllocationStatus.RECOVERED),
        forced_count=sum(1 for a in ledger if a.status is AllocationStatus.FORCED),
        allocations=ledger,
        used_fallback=used_fallback,
    )


def allocate(lots, target, specs, product_size):
    """Run greedy, recovery and forced passes for one partition.

    Returns the BlendSummary and the greedy rejection queue.
    """
    state = BlendState(lots, target)
    greedy_pass(state, specs)
    recovery_pass(state, specs)
    forced_pass(state)
    summary = aggregate(state, specs, product_size)
    if summary.shortfall > 0:
        logger.info(
            "%s: allocated %.2ft of %.2ft target (shortfall %.2ft)",
            product_size, summary.total_allocated, target, summary.shortfall,
        )
    return summary, tuple(state.rejections)
