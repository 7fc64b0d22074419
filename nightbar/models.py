# nightbar/models.py
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import REPUTATION_MAX, REPUTATION_MIN

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
MT_STATE_WORDS = 624


def to_cents(value: float) -> float:
    return round(value, 2)


class CostTag(str, Enum):
    """Classifies every money movement the engine logs."""

    RENT = "rent"
    WAGES = "wages"
    OPERATING = "operating"
    SUPPLIER = "supplier"
    FOOD = "food"
    UPGRADE = "upgrade"
    ACTIVITY = "activity"
    SECURITY = "security"
    BOUNCER = "bouncer"
    EVENT = "event"
    INN_MAINTENANCE = "inn_maintenance"
    INTEREST = "interest"
    OTHER = "other"


class CreditLine(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    name: str
    tag: CostTag = CostTag.OTHER
    balance: float = Field(default=0.0, ge=0.0)
    limit: float = Field(ge=0.0)
    rate: float = Field(default=0.0, ge=0.0)  # Weekly

    @model_validator(mode="after")
    def _balance_within_limit(self) -> "CreditLine":
        if self.balance > self.limit:
            raise ValueError(f"{self.name}: balance {self.balance} exceeds limit {self.limit}")
        return self

    @property
    def headroom(self) -> float:
        return to_cents(self.limit - self.balance)

    def draw(self, amount: float) -> float:
        """Borrow up to ``amount``; returns what was actually drawn."""
        taken = min(amount, self.headroom)
        self.balance = min(self.limit, to_cents(self.balance + taken))
        return taken

    def repay(self, amount: float) -> float:
        paid = min(amount, self.balance)
        self.balance = max(0.0, to_cents(self.balance - paid))
        return paid


class CreditDraw(BaseModel):
    model_config = ConfigDict(frozen=True)

    line_name: str
    amount: float
    reason: str


class Punter(BaseModel):
    punter_id: int
    served: bool = True
    refunded: bool = False
    spend: float = 0.0


class RngState(BaseModel):
    """Serializable position of a Mersenne Twister stream."""

    bit_generator: str = "MT19937"
    keys: List[int]
    pos: int
    has_gauss: int = 0
    cached_gaussian: float = 0.0

    @field_validator("bit_generator")
    @classmethod
    def _mersenne_only(cls, v: str) -> str:
        if v != "MT19937":
            raise ValueError(f"unsupported bit generator {v!r}")
        return v

    @field_validator("keys")
    @classmethod
    def _full_key_vector(cls, v: List[int]) -> List[int]:
        if len(v) != MT_STATE_WORDS:
            raise ValueError(f"expected {MT_STATE_WORDS} key words, got {len(v)}")
        if any(k < 0 or k > 0xFFFFFFFF for k in v):
            raise ValueError("key words must fit in 32 bits")
        return v

    @field_validator("pos")
    @classmethod
    def _pos_in_range(cls, v: int) -> int:
        if not 0 <= v <= MT_STATE_WORDS:
            raise ValueError(f"stream position {v} outside 0..{MT_STATE_WORDS}")
        return v

    @staticmethod
    def seed_words(seed: int) -> List[int]:
        # RandomState only takes 32-bit words; split the signed 64-bit seed.
        unsigned = seed & 0xFFFFFFFFFFFFFFFF
        return [unsigned & 0xFFFFFFFF, unsigned >> 32]

    @classmethod
    def from_seed(cls, seed: int) -> "RngState":
        return cls.capture(np.random.RandomState(cls.seed_words(seed)))

    @classmethod
    def capture(cls, rng: np.random.RandomState) -> "RngState":
        name, keys, pos, has_gauss, cached = rng.get_state()
        return cls(
            bit_generator=name,
            keys=[int(k) for k in keys],
            pos=int(pos),
            has_gauss=int(has_gauss),
            cached_gaussian=float(cached),
        )

    def to_random_state(self) -> np.random.RandomState:
        rng = np.random.RandomState()
        rng.set_state((
            self.bit_generator,
            np.array(self.keys, dtype=np.uint32),
            self.pos,
            self.has_gauss,
            self.cached_gaussian,
        ))
        return rng


class GameState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    seed: int = Field(ge=INT64_MIN, le=INT64_MAX)
    cash: float
    credit_lines: List[CreditLine] = []
    reputation: int = Field(ge=REPUTATION_MIN, le=REPUTATION_MAX)
    chaos: float = Field(default=0.0, ge=0.0)
    night_open: bool = False
    week_count: int = Field(default=1, ge=0)
    day_index: int = Field(default=0, ge=0)  # 0-based
    round_in_night: int = Field(default=0, ge=0)
    rounds_today: int = Field(default=0, ge=0)  # Survives closing; drives the day rollover
    night_punters: List[Punter] = []
    night_unserved: int = Field(default=0, ge=0)
    night_refunds: int = Field(default=0, ge=0)
    night_fights: int = Field(default=0, ge=0)
    night_events: int = Field(default=0, ge=0)
    rng: RngState
    config_overrides: Dict[str, float] = {}

    def total_credit_balance(self) -> float:
        return to_cents(sum(line.balance for line in self.credit_lines))

    def reset_night(self):
        self.round_in_night = 0
        self.night_unserved = 0
        self.night_refunds = 0
        self.night_fights = 0
        self.night_events = 0
        self.night_punters = []

    def reset_calendar(self, week: int = 1):
        self.night_open = False
        self.week_count = week
        self.day_index = 0
        self.rounds_today = 0
        self.reset_night()


class VIPNightOutcome(BaseModel):
    """Result of resolving one round. Consumed immediately, never stored."""

    model_config = ConfigDict(frozen=True)

    unserved_count: int = Field(ge=0)
    fight_count: int = Field(ge=0)
    event_count: int = Field(ge=0)
    refund_count: int = Field(ge=0)
    price_multiplier: float
    food_quality_signal: float = Field(ge=0.0, le=1.0)


class LogEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str  # SERVICE, ROUND, FINANCE, CREDIT, CALENDAR
    message: str
    tag: Optional[CostTag] = None
    amount: Optional[float] = None
    week: int = 0
    day: int = 0
    round: int = 0


class PresentationSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    money: float
    debt: float
    reputation: int
    chaos: float
    service_open: bool
    week: int
    day: int  # 1-based
    round: int
    traffic: int
    unserved_last_tick: int
    refunds_last_tick: int
    fights_last_tick: int

    @property
    def net_worth(self) -> float:
        return to_cents(self.money - self.debt)

    @property
    def chaos_band(self) -> str:
        if self.chaos > 50:
            return "riot"
        elif self.chaos > 20:
            return "rowdy"
        return "calm"

    @property
    def reputation_band(self) -> str:
        if self.reputation > 50:
            return "good"
        elif self.reputation >= 25:
            return "fair"
        return "poor"


class SaveEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    save_version: int = Field(alias="saveVersion")
    seed: int = Field(ge=INT64_MIN, le=INT64_MAX)
    payload: str
