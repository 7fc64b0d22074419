import base64
import json
import zlib

import pytest

from nightbar.config import SAVE_VERSION
from nightbar.engine import Simulation, new_game
from nightbar.errors import IOFailure, NoSaveFound, SaveCorrupt, SaveIncompatible
from nightbar.models import GameState
from nightbar.storage import build_envelope, decode_state, encode_state, read_save, write_save


def _played_state(seed=11, rounds=10):
    state = new_game(seed, {'initial_cash': 50.0, 'rent_daily': 300.0})
    sim = Simulation(state)
    sim.open_night()
    for _ in range(rounds):
        if not sim.is_open:
            break
        sim.play_round()
    return state


def test_round_trip_restores_every_field(tmp_path):
    state = _played_state()
    path = write_save(state, tmp_path / "savegame.json")

    loaded = read_save(path)

    assert loaded == state
    assert loaded.rng == state.rng
    assert loaded.model_dump_json() == state.model_dump_json()


def test_loaded_game_continues_identically(tmp_path):
    state = _played_state(rounds=3)
    write_save(state, tmp_path / "savegame.json")
    loaded = read_save(tmp_path / "savegame.json")

    original = Simulation(state)
    restored = Simulation(loaded)
    for _ in range(5):
        assert original.play_round() == restored.play_round()
    assert original.state.model_dump_json() == restored.state.model_dump_json()


def test_saving_does_not_move_the_stream(tmp_path):
    state = _played_state(rounds=2)
    rng_before = state.rng.model_copy(deep=True)
    write_save(state, tmp_path / "savegame.json")
    assert state.rng == rng_before


def test_envelope_wire_format(tmp_path):
    state = new_game(-(2 ** 63))
    path = write_save(state, tmp_path / "savegame.json")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"saveVersion", "seed", "payload"}
    assert data["saveVersion"] == SAVE_VERSION
    assert data["seed"] == -(2 ** 63)
    assert isinstance(data["payload"], str)
    assert not (tmp_path / "savegame.json.tmp").exists()


def test_payload_codec():
    state = _played_state(rounds=1)
    assert isinstance(decode_state(encode_state(state)), GameState)
    assert build_envelope(state).seed == state.seed


def test_missing_file(tmp_path):
    with pytest.raises(NoSaveFound):
        read_save(tmp_path / "nothing.json")


def test_old_version_is_incompatible(tmp_path):
    path = write_save(new_game(1), tmp_path / "savegame.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    data["saveVersion"] = 0
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(SaveIncompatible) as info:
        read_save(path)
    assert info.value.found == 0
    assert info.value.expected == SAVE_VERSION


@pytest.mark.parametrize("text", ['[1, 2, 3]', '{"seed": 1, "payload": "x"}', '{"saveVersion": 1, "seed": 1}'])
def test_unrecognised_envelopes_are_incompatible(tmp_path, text):
    path = tmp_path / "savegame.json"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(SaveIncompatible):
        read_save(path)


@pytest.mark.parametrize("text", [
    'not json at all',
    '{"saveVersion": 1, "seed": 1, "payload": "!!!not base64!!!"}',
    '{"saveVersion": 1, "seed": 1, "payload": "aGVsbG8="}',
    '{"saveVersion": 1, "seed": "abc", "payload": "aGVsbG8="}',
])
def test_garbage_is_corrupt(tmp_path, text):
    path = tmp_path / "savegame.json"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(SaveCorrupt):
        read_save(path)


def test_seed_mismatch_is_corrupt(tmp_path):
    path = write_save(new_game(5), tmp_path / "savegame.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    data["seed"] = 6
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(SaveCorrupt):
        read_save(path)


def _rewrite_payload(path, mutate):
    data = json.loads(path.read_text(encoding="utf-8"))
    raw = json.loads(zlib.decompress(base64.b64decode(data["payload"])))
    mutate(raw)
    data["payload"] = base64.b64encode(zlib.compress(json.dumps(raw).encode("utf-8"))).decode("ascii")
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.mark.parametrize("mutate", [
    lambda raw: raw["rng"].update(keys=[1, 2, 3]),
    lambda raw: raw["rng"].update(keys=[2 ** 32] * 624),
    lambda raw: raw["rng"].update(pos=625),
    lambda raw: raw["rng"].update(bit_generator="PCG64"),
])
def test_unrestorable_stream_is_corrupt(tmp_path, mutate):
    path = write_save(new_game(12), tmp_path / "savegame.json")
    _rewrite_payload(path, mutate)
    with pytest.raises(SaveCorrupt):
        read_save(path)


def test_unreadable_save_is_an_io_failure(tmp_path):
    path = tmp_path / "savegame.json"
    path.mkdir()
    with pytest.raises(IOFailure):
        read_save(path)
