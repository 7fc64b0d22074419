# nightbar/scorer.py
from .models import GameState, to_cents

def calculate_net_worth(state: GameState) -> float:
    """
    Net Worth = Cash - Debt
    Debt is the combined balance of every credit line.
    """
    return to_cents(state.cash - state.total_credit_balance())
