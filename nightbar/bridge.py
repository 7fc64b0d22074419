# nightbar/bridge.py
import logging
import time
from pathlib import Path
from typing import Dict, Optional, Union

from .config import SAVE_FILE
from .engine import Simulation, new_game
from .errors import IOFailure, NoSaveFound, SaveCorrupt, SaveIncompatible
from .logger import UILogger
from .models import GameState, PresentationSnapshot, VIPNightOutcome
from .storage import read_save, write_save

logger = logging.getLogger(__name__)


def time_seed() -> int:
    return time.time_ns() & 0x7FFFFFFFFFFFFFFF


class SimBridge:
    """Thin adapter between a presentation layer and the simulation."""

    def __init__(self,
                 save_dir: Union[str, Path] = ".",
                 save_file: str = SAVE_FILE,
                 config_overrides: Optional[Dict[str, float]] = None):
        self.save_path = Path(save_dir) / save_file
        self.config_overrides = dict(config_overrides or {})
        self.ui_logger = UILogger()
        self._state: Optional[GameState] = None
        self._simulation: Optional[Simulation] = None

    @property
    def state(self) -> GameState:
        self._ensure_live()
        return self._state

    @property
    def simulation(self) -> Simulation:
        self._ensure_live()
        return self._simulation

    def start_new_game(self, seed: Optional[int] = None):
        if seed is None:
            seed = time_seed()
        self._bind(new_game(seed, self.config_overrides))
        logger.info("Started new game with seed %d", seed)

    def has_save(self) -> bool:
        return self.save_path.exists()

    def save_game(self) -> str:
        self._ensure_live()
        try:
            write_save(self._state, self.save_path)
        except IOFailure as e:
            logger.error("Save failed: %s", e)
            return "Save failed."
        return "Saved!"

    def load_game(self) -> str:
        try:
            state = read_save(self.save_path)
        except NoSaveFound:
            return "No save found."
        except SaveIncompatible as e:
            logger.warning("Rejected save: %s", e)
            return "Save file is incompatible."
        except SaveCorrupt as e:
            logger.warning("Rejected save: %s", e)
            return "Save file is corrupt."
        except IOFailure as e:
            logger.error("Load failed: %s", e)
            return "Save file could not be read."

        self._bind(state)
        return "Loaded."

    def open_service(self):
        self.simulation.open_night()

    def close_service(self, reason: str = "Manual close"):
        self.simulation.close_night(reason)

    def advance(self) -> VIPNightOutcome:
        sim = self.simulation
        if not sim.is_open:
            sim.open_night()
        return sim.play_round()

    def repay_debt(self, amount: float) -> str:
        paid = self.simulation.repay_credit(amount)
        if paid <= 0:
            return "Nothing repaid."
        return f"Repaid ${paid:.2f}."

    def reset_for_menu(self):
        self.simulation.reset_for_menu()

    def snapshot(self) -> PresentationSnapshot:
        return self.simulation.snapshot()

    def _bind(self, state: GameState):
        # Drop the old binding first so its state can be collected.
        self._simulation = None
        self._state = state
        self._simulation = Simulation(state, self.ui_logger)

    def _ensure_live(self):
        if self._simulation is None:
            self.start_new_game()
