# nightbar/storage.py
import base64
import binascii
import json
import logging
import os
import zlib
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .config import SAVE_VERSION
from .errors import IOFailure, NoSaveFound, SaveCorrupt, SaveIncompatible
from .models import GameState, SaveEnvelope

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def encode_state(state: GameState) -> str:
    """GameState JSON -> zlib -> base64 text."""
    raw = state.model_dump_json().encode("utf-8")
    return base64.b64encode(zlib.compress(raw)).decode("ascii")


def decode_state(payload: str) -> GameState:
    try:
        raw = zlib.decompress(base64.b64decode(payload.encode("ascii"), validate=True))
        state = GameState.model_validate_json(raw)
        # The stream must actually restore, or the first round would crash
        state.rng.to_random_state()
        return state
    except (binascii.Error, zlib.error, UnicodeError, ValueError, IndexError, OverflowError) as e:
        # ValidationError is a ValueError
        raise SaveCorrupt(f"Save payload could not be decoded: {e}") from e


def build_envelope(state: GameState) -> SaveEnvelope:
    # The seed is stored as recorded; saving must not move the RNG stream.
    return SaveEnvelope(save_version=SAVE_VERSION, seed=state.seed, payload=encode_state(state))


def write_save(state: GameState, path: PathLike) -> Path:
    """Writes the envelope next to ``path`` and swaps it into place."""
    path = Path(path)
    envelope = build_envelope(state)
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(envelope.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        raise IOFailure(f"Could not write save to {path}: {e}") from e
    logger.info("Saved game (seed %d) to %s", state.seed, path)
    return path


def read_envelope(path: PathLike) -> SaveEnvelope:
    path = Path(path)
    if not path.exists():
        raise NoSaveFound(str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SaveCorrupt(f"Save file is not text: {e}") from e
    except OSError as e:
        raise IOFailure(f"Could not read save from {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SaveCorrupt(f"Save file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise SaveIncompatible(None, SAVE_VERSION)
    version = data.get("saveVersion")
    if version != SAVE_VERSION or isinstance(version, bool):
        raise SaveIncompatible(version, SAVE_VERSION)
    if data.get("payload") is None:
        raise SaveIncompatible(version, SAVE_VERSION)

    try:
        return SaveEnvelope.model_validate(data)
    except ValidationError as e:
        raise SaveCorrupt(f"Save envelope is malformed: {e}") from e


def read_save(path: PathLike) -> GameState:
    """Loads a GameState. Never touches anything but the file."""
    envelope = read_envelope(path)
    state = decode_state(envelope.payload)
    if state.seed != envelope.seed:
        raise SaveCorrupt(f"Envelope seed {envelope.seed} does not match payload seed {state.seed}")
    return state
