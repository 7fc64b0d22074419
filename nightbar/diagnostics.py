# nightbar/diagnostics.py
from typing import Any, Dict, List

import numpy as np

from .models import GameState, VIPNightOutcome
from .scorer import calculate_net_worth


class Diagnostics:
    def __init__(self, seed: int):
        self.seed = seed

        # Tracking Data
        self.history = []
        self.outcomes: List[VIPNightOutcome] = []

        # Metrics
        self.total_fights = 0
        self.total_refunds = 0
        self.total_unserved = 0
        self.total_events = 0
        self.nights_played = 0
        self.forced_closures = 0

    def record_round(self, state: GameState, outcome: VIPNightOutcome):
        """Record a single round"""
        self.history.append({
            'week': state.week_count,
            'day': state.day_index + 1,
            'round': state.round_in_night,
            'cash': state.cash,
            'debt': state.total_credit_balance(),
            'reputation': state.reputation,
            'chaos': state.chaos,
            'traffic': len(state.night_punters),
        })
        self.outcomes.append(outcome)

        self.total_fights += outcome.fight_count
        self.total_refunds += outcome.refund_count
        self.total_unserved += outcome.unserved_count
        self.total_events += outcome.event_count

    def record_night(self, forced: bool = False):
        self.nights_played += 1
        if forced:
            self.forced_closures += 1

    def classify_venue(self) -> str:
        """Classify the venue from how the run went"""
        if not self.history:
            return "Unknown"

        last = self.history[-1]
        avg_chaos = np.mean([h['chaos'] for h in self.history])

        if last['cash'] - last['debt'] < 0:
            return "Debt Spiral"
        elif avg_chaos > 20:
            return "Rowdy Dive"
        elif last['reputation'] > 75:
            return "Local Favourite"
        else:
            return "Steady Trade"

    def generate_report(self, state: GameState) -> Dict[str, Any]:
        """Generate final diagnostic report"""
        traffic = [h['traffic'] for h in self.history]
        return {
            'seed': self.seed,
            'venue': self.classify_venue(),
            'rounds': len(self.history),
            'nights': self.nights_played,
            'forced_closures': self.forced_closures,
            'avg_traffic': round(float(np.mean(traffic)), 2) if traffic else 0.0,
            'peak_chaos': round(float(np.max([h['chaos'] for h in self.history])), 2) if self.history else 0.0,
            'final_cash': state.cash,
            'final_debt': state.total_credit_balance(),
            'net_worth': calculate_net_worth(state),
            'metrics': {
                'fights': self.total_fights,
                'refunds': self.total_refunds,
                'unserved': self.total_unserved,
                'events': self.total_events,
            }
        }
