# nightbar/mechanics.py
import logging
import math
from typing import Tuple

import numpy as np

from .config import *
from .models import VIPNightOutcome

logger = logging.getLogger(__name__)


def cyclic_term(round_in_night: int) -> int:
    """Bounded periodic swing so traffic varies without growing."""
    return round_in_night % TRAFFIC_CYCLE


def calculate_traffic(reputation: int, chaos: float, round_in_night: int, scenario_config: dict) -> int:
    base = int(scenario_config.get('base_traffic', BASE_TRAFFIC))
    traffic = base + reputation // 10 - math.floor(chaos) + cyclic_term(round_in_night)
    return max(0, traffic)


def fight_probability(chaos: float, scenario_config: dict) -> float:
    """Monotonically non-decreasing in chaos, capped."""
    base = scenario_config.get('base_fight_prob', BASE_FIGHT_PROB)
    per_chaos = scenario_config.get('fight_prob_per_chaos', FIGHT_PROB_PER_CHAOS)
    cap = scenario_config.get('max_fight_prob', MAX_FIGHT_PROB)
    return min(cap, base + chaos * per_chaos)


def price_multiplier(reputation: int, chaos: float) -> float:
    return max(0.5, 1.0 + (reputation - 50) / 200.0 - min(chaos, 40.0) / 200.0)


def food_quality(reputation: int, chaos: float) -> float:
    return min(1.0, max(0.0, reputation / 100.0 - chaos / 100.0))


def resolve_round(reputation: int,
                  chaos: float,
                  round_in_night: int,
                  rng: np.random.RandomState,
                  scenario_config: dict) -> Tuple[VIPNightOutcome, int]:
    """
    Resolves one round of service. Returns (outcome, traffic).

    Always consumes exactly four draws from ``rng`` in a fixed order, so a
    stream position fully determines the rest of the night.
    """
    # Random perturbations
    u_unserved = int(rng.randint(0, 3))
    u_refund = int(rng.randint(0, 2))
    u_fight = float(rng.random_sample())
    u_event = float(rng.random_sample())

    traffic = calculate_traffic(reputation, chaos, round_in_night, scenario_config)

    # 1. Door & Bar
    unserved = min(traffic, round_in_night % 3 + u_unserved)
    served = traffic - unserved
    refunds = min(served, u_refund + (1 if round_in_night % 4 == 0 else 0))

    # 2. Trouble
    fights = 0
    if traffic > 0 and u_fight < fight_probability(chaos, scenario_config):
        fights = min(traffic, 1 + int(chaos // CHAOS_PER_EXTRA_FIGHT))

    # 3. Entertainment
    events = 0
    if traffic > 0 and u_event < scenario_config.get('event_chance', EVENT_CHANCE):
        events = 1

    outcome = VIPNightOutcome(
        unserved_count=unserved,
        fight_count=fights,
        event_count=events,
        refund_count=refunds,
        price_multiplier=price_multiplier(reputation, chaos),
        food_quality_signal=food_quality(reputation, chaos),
    )
    return outcome, traffic


def next_chaos(chaos: float, fights: int, scenario_config: dict) -> float:
    if fights > 0:
        return chaos + fights * scenario_config.get('chaos_per_fight', CHAOS_PER_FIGHT)

    decayed = chaos - scenario_config.get('chaos_decay', CHAOS_DECAY)
    if decayed < 0:
        logger.debug("Chaos decay floored at 0 (raw %.2f)", decayed)
        return 0.0
    return decayed


def next_reputation(reputation: int, fights: int, events: int, scenario_config: dict) -> int:
    drift = int(scenario_config.get('reputation_drift', REPUTATION_DRIFT))
    penalty = int(scenario_config.get('reputation_per_fight', REPUTATION_PER_FIGHT))
    raw = reputation + drift - penalty * fights + events

    clamped = max(REPUTATION_MIN, min(REPUTATION_MAX, raw))
    if clamped != raw:
        logger.debug("Reputation clamped from %d to %d", raw, clamped)
    return clamped
