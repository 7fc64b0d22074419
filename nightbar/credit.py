# nightbar/credit.py
import logging
from typing import List, Sequence

from .errors import NoCreditAvailable
from .models import CreditDraw, CreditLine, to_cents

logger = logging.getLogger(__name__)

# Anything below half a cent is treated as settled.
EPSILON = 0.005


class CreditLineSelector:
    """
    Strategy for choosing which facility absorbs a cash shortfall.
    Implementations must not mutate the options they are given.
    """

    def select(self, options: Sequence[CreditLine], shortfall: float, reason: str) -> CreditLine:
        raise NotImplementedError


class CheapestRateSelector(CreditLineSelector):
    """Lowest rate wins; ties go to the earlier line."""

    def select(self, options, shortfall, reason):
        if not options:
            raise NoCreditAvailable(shortfall, 0.0, reason)
        # min() keeps the first of equal keys
        return min(options, key=lambda line: line.rate)


class PriorityOrderSelector(CreditLineSelector):
    """Always draws from the first line that still has headroom."""

    def select(self, options, shortfall, reason):
        if not options:
            raise NoCreditAvailable(shortfall, 0.0, reason)
        return options[0]


def available_headroom(lines: Sequence[CreditLine]) -> float:
    return to_cents(sum(line.headroom for line in lines))


def cover_shortfall(lines: List[CreditLine],
                    shortfall: float,
                    reason: str,
                    selector: CreditLineSelector) -> List[CreditDraw]:
    """
    Borrows ``shortfall`` across ``lines`` using ``selector``.
    All-or-nothing: if total headroom is too small nothing is drawn and
    NoCreditAvailable is raised.
    """
    headroom = available_headroom(lines)
    if shortfall > headroom + EPSILON:
        raise NoCreditAvailable(to_cents(shortfall), headroom, reason)

    draws = []
    remaining = to_cents(shortfall)
    while remaining > EPSILON:
        candidates = [line for line in lines if line.headroom > 0]
        choice = selector.select(candidates, remaining, reason)
        if not any(choice is c for c in candidates):
            raise ValueError(f"{type(selector).__name__} returned a line that was not offered")

        taken = choice.draw(remaining)
        remaining = to_cents(remaining - taken)
        draws.append(CreditDraw(line_name=choice.name, amount=to_cents(taken), reason=reason))
        logger.debug("Drew %.2f from %s for %s", taken, choice.name, reason)
    return draws


def repay_lines(lines: List[CreditLine], amount: float) -> List[CreditDraw]:
    """Pays balances down, most expensive first."""
    repayments = []
    remaining = to_cents(amount)
    # sorted() is stable, so equal rates keep ledger order
    for line in sorted(lines, key=lambda l: -l.rate):
        if remaining <= EPSILON:
            break
        if line.balance <= 0:
            continue
        paid = line.repay(remaining)
        remaining = to_cents(remaining - paid)
        repayments.append(CreditDraw(line_name=line.name, amount=to_cents(paid), reason="Repayment"))
    return repayments
