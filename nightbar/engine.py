# nightbar/engine.py
import logging
import weakref
from typing import Dict, List, Optional

from .config import *
from .credit import CheapestRateSelector, CreditLineSelector, cover_shortfall, repay_lines
from .errors import InvalidTransition, NoCreditAvailable
from .logger import UILogger
from .mechanics import next_chaos, next_reputation, resolve_round
from .models import (
    CostTag, CreditDraw, CreditLine, GameState, LogEvent, PresentationSnapshot,
    Punter, RngState, VIPNightOutcome, to_cents,
)

logger = logging.getLogger(__name__)

# id(GameState) -> the Simulation currently bound to it
_OWNERS = weakref.WeakValueDictionary()


def new_game(seed: int, config_overrides: Optional[Dict[str, float]] = None) -> GameState:
    config = dict(config_overrides or {})
    lines = [
        CreditLine(name=name, tag=CostTag(tag), limit=limit, rate=rate)
        for name, tag, limit, rate in DEFAULT_CREDIT_LINES
    ]
    return GameState(
        seed=seed,
        cash=config.get('initial_cash', INITIAL_CASH),
        credit_lines=lines,
        reputation=int(config.get('initial_reputation', INITIAL_REPUTATION)),
        chaos=INITIAL_CHAOS,
        week_count=INITIAL_WEEK,
        rng=RngState.from_seed(seed),
        config_overrides=config,
    )


class Simulation:
    """
    Night-service state machine over a single GameState.

    Service is either closed or open. Rounds can only be played while open;
    each round resolves traffic, settles money (borrowing on shortfall),
    moves chaos and reputation, and rolls the calendar every ROUNDS_PER_DAY
    rounds.
    """

    def __init__(self,
                 state: GameState,
                 ui_logger: Optional[UILogger] = None,
                 selector: Optional[CreditLineSelector] = None):
        owner = _OWNERS.get(id(state))
        if owner is not None and owner.state is state:
            raise ValueError("GameState is already bound to another Simulation")

        self.state = state
        self.ui_logger = ui_logger or UILogger()
        self.selector = selector or CheapestRateSelector()
        self.config = state.config_overrides
        self._forced_close_reason: Optional[str] = None
        _OWNERS[id(state)] = self

    @property
    def is_open(self) -> bool:
        return self.state.night_open

    # --- Service transitions ---

    def open_night(self):
        if self.state.night_open:
            self._publish("SERVICE", "SERVICE: Already open, request ignored.")
            return
        self.state.reset_night()
        self.state.night_open = True
        self._publish("SERVICE", "SERVICE: Doors open.")

    def close_night(self, reason: str):
        if not self.state.night_open:
            return
        self.state.night_open = False
        self._publish("SERVICE", f"SERVICE: Closed. Reason: {reason}")

    def play_round(self) -> VIPNightOutcome:
        if not self.state.night_open:
            raise InvalidTransition("Cannot play a round while service is closed")

        state = self.state
        self._forced_close_reason = None

        # 1. Clock
        state.round_in_night += 1
        state.rounds_today += 1

        # 2. Resolve (the stream position lives in the state)
        rng = state.rng.to_random_state()
        outcome, traffic = resolve_round(state.reputation, state.chaos, state.round_in_night, rng, self.config)
        state.rng = RngState.capture(rng)

        served = traffic - outcome.unserved_count
        ticket = self.config.get('price_per_punter', PRICE_PER_PUNTER) * outcome.price_multiplier
        state.night_punters = self._seat_punters(traffic, outcome, ticket)
        state.night_unserved += outcome.unserved_count
        state.night_refunds += outcome.refund_count
        state.night_fights += outcome.fight_count
        state.night_events += outcome.event_count

        # 3. Money
        self._settle_round(served, ticket, outcome)

        # 4. Chaos
        state.chaos = next_chaos(state.chaos, outcome.fight_count, self.config)

        # 5. Reputation
        state.reputation = next_reputation(state.reputation, outcome.fight_count, outcome.event_count, self.config)

        self._publish(
            "ROUND",
            f"ROUND {state.round_in_night}: {traffic} in, {outcome.unserved_count} unserved, "
            f"{outcome.refund_count} refunds, {outcome.fight_count} fights",
        )

        # 6. Calendar
        if state.rounds_today >= ROUNDS_PER_DAY:
            state.rounds_today = 0
            self._end_day()

        if self._forced_close_reason:
            self.close_night(self._forced_close_reason)
        return outcome

    # --- Other entry points ---

    def repay_credit(self, amount: float) -> float:
        """Pays debt down from cash. Returns what was actually repaid."""
        state = self.state
        amount = min(to_cents(amount), state.cash, state.total_credit_balance())
        if amount <= 0:
            self._publish("FINANCE", "FINANCE: Nothing to repay.")
            return 0.0

        repayments = repay_lines(state.credit_lines, amount)
        paid = to_cents(sum(r.amount for r in repayments))
        state.cash = to_cents(state.cash - paid)
        for r in repayments:
            self._publish("CREDIT", f"CREDIT: Repaid ${r.amount:.2f} to {r.line_name}.",
                          tag=CostTag.OTHER, amount=-r.amount)
        return paid

    def reset_for_menu(self):
        self.state.reset_calendar(week=INITIAL_WEEK)
        self._publish("CALENDAR", "CALENDAR: Calendar reset.")

    def snapshot(self) -> PresentationSnapshot:
        state = self.state
        return PresentationSnapshot(
            money=state.cash,
            debt=state.total_credit_balance(),
            reputation=state.reputation,
            chaos=state.chaos,
            service_open=state.night_open,
            week=state.week_count,
            day=state.day_index + 1,
            round=state.round_in_night,
            traffic=len(state.night_punters),
            unserved_last_tick=state.night_unserved,
            refunds_last_tick=state.night_refunds,
            fights_last_tick=state.night_fights,
        )

    # --- Internals ---

    def _seat_punters(self, traffic: int, outcome: VIPNightOutcome, ticket: float) -> List[Punter]:
        punters = []
        for i in range(traffic):
            served = i >= outcome.unserved_count
            refunded = served and i < outcome.unserved_count + outcome.refund_count
            spend = to_cents(ticket) if served and not refunded else 0.0
            punters.append(Punter(punter_id=i + 1, served=served, refunded=refunded, spend=spend))
        return punters

    def _settle_round(self, served: int, ticket: float, outcome: VIPNightOutcome):
        cfg = self.config
        lines = [
            ("Bar takings", CostTag.OPERATING, served * ticket),
            ("Refunds", CostTag.OPERATING,
             -outcome.refund_count * ticket * cfg.get('refund_cost_mult', REFUND_COST_MULT)),
            ("Food", CostTag.FOOD,
             -served * cfg.get('food_cost_per_punter', FOOD_COST_PER_PUNTER) * (0.5 + outcome.food_quality_signal)),
            ("Fight damage", CostTag.SECURITY, -outcome.fight_count * cfg.get('fight_cost', FIGHT_COST)),
            ("Entertainment", CostTag.EVENT, -outcome.event_count * cfg.get('event_cost', EVENT_COST)),
        ]

        net = 0.0
        for label, tag, amount in lines:
            amount = to_cents(amount)
            if amount == 0:
                continue
            net += amount
            sign = "+" if amount > 0 else "-"
            self._publish("FINANCE", f"FINANCE: {label} {sign}${abs(amount):.2f}", tag=tag, amount=amount)

        net = to_cents(net)
        if net >= 0:
            self.state.cash = to_cents(self.state.cash + net)
        else:
            self._charge(-net, CostTag.OPERATING, f"Round {self.state.round_in_night} loss", itemised=True)

    def _end_day(self):
        state = self.state
        self._charge(self.config.get('rent_daily', RENT_DAILY), CostTag.RENT, "Daily rent")
        self._charge(self.config.get('wages_daily', WAGES_DAILY), CostTag.WAGES, "Staff wages")

        state.day_index += 1
        if state.day_index >= DAYS_PER_WEEK:
            state.day_index = 0
            state.week_count += 1
            self._publish("CALENDAR", f"CALENDAR: Week {state.week_count} begins.")
            self._charge_interest()
        else:
            self._publish("CALENDAR", f"CALENDAR: Day {state.day_index + 1} of week {state.week_count}.")

    def _charge_interest(self):
        interest = to_cents(sum(line.balance * line.rate for line in self.state.credit_lines))
        self._charge(interest, CostTag.INTEREST, "Weekly interest")

    def _charge(self, amount: float, tag: CostTag, reason: str, itemised: bool = False):
        """Takes ``amount`` from cash, borrowing whatever pushes cash below zero."""
        amount = to_cents(amount)
        if amount <= 0:
            return
        state = self.state
        state.cash = to_cents(state.cash - amount)
        if not itemised:
            self._publish("FINANCE", f"FINANCE: {reason} -${amount:.2f}", tag=tag, amount=-amount)
        if state.cash < 0:
            self._borrow(-state.cash, f"{tag.value}: {reason}")

    def _borrow(self, shortfall: float, reason: str):
        state = self.state
        draws: List[CreditDraw]
        try:
            draws = cover_shortfall(state.credit_lines, shortfall, reason, self.selector)
        except NoCreditAvailable as exc:
            logger.warning("Credit exhausted: %s", exc)
            self._publish("CREDIT", f"CREDIT: No credit left to cover ${exc.shortfall:.2f} ({reason}).")
            draws = []
            if exc.headroom > 0:
                draws = cover_shortfall(state.credit_lines, exc.headroom, reason, self.selector)
            self._forced_close_reason = "Out of credit"

        for d in draws:
            state.cash = to_cents(state.cash + d.amount)
            self._publish("CREDIT", f"CREDIT: Drew ${d.amount:.2f} from {d.line_name}.", amount=d.amount)

    def _publish(self, kind: str, message: str, tag: Optional[CostTag] = None, amount: Optional[float] = None):
        state = self.state
        self.ui_logger.publish(LogEvent(
            kind=kind,
            message=message,
            tag=tag,
            amount=amount,
            week=state.week_count,
            day=state.day_index + 1,
            round=state.round_in_night,
        ))
