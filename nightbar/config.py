# nightbar/config.py

# Starting Position
INITIAL_CASH = 500.0
INITIAL_REPUTATION = 50
INITIAL_CHAOS = 0.0
INITIAL_WEEK = 1

# Calendar
ROUNDS_PER_DAY = 7
DAYS_PER_WEEK = 7

# Traffic
BASE_TRAFFIC = 8
TRAFFIC_CYCLE = 5         # round_in_night % 5 added to traffic

# Prices & Costs (per punter unless noted)
PRICE_PER_PUNTER = 6.0
REFUND_COST_MULT = 1.0    # Refund gives back the full ticket
FOOD_COST_PER_PUNTER = 1.5
FIGHT_COST = 25.0         # Breakages + security call-out, per fight
EVENT_COST = 10.0

# Daily Overheads (charged when a day ends)
RENT_DAILY = 40.0
WAGES_DAILY = 60.0

# Disorder
CHAOS_PER_FIGHT = 3.0
CHAOS_DECAY = 1.0         # Per quiet round
BASE_FIGHT_PROB = 0.05
FIGHT_PROB_PER_CHAOS = 0.02
MAX_FIGHT_PROB = 0.9
CHAOS_PER_EXTRA_FIGHT = 10.0

# Reputation
REPUTATION_MIN = 0
REPUTATION_MAX = 100
REPUTATION_DRIFT = 1
REPUTATION_PER_FIGHT = 3

# Events
EVENT_CHANCE = 0.1

# Credit Facilities: (name, tag, limit, weekly rate). Order is the tie-break order.
DEFAULT_CREDIT_LINES = [
    ("Bank overdraft", "operating", 1000.0, 0.02),
    ("Supplier tab", "supplier", 500.0, 0.01),
    ("Loan shark", "other", 2000.0, 0.15),
]

# Persistence
SAVE_VERSION = 1
SAVE_FILE = "savegame.json"

# UI Event History
LOG_HISTORY_LIMIT = 200
