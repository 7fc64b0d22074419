import base64
import json
import zlib

from nightbar.bridge import SimBridge


def test_messages_through_a_save_cycle(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    assert not bridge.has_save()
    assert bridge.load_game() == "No save found."

    bridge.start_new_game(42)
    bridge.advance()
    assert bridge.save_game() == "Saved!"
    assert bridge.has_save()

    saved = bridge.state.model_dump_json()
    bridge.advance()
    assert bridge.load_game() == "Loaded."
    assert bridge.state.model_dump_json() == saved
    assert bridge.snapshot().round == 1


def test_incompatible_save_leaves_game_running(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(42)
    bridge.advance()
    bridge.save_game()

    path = tmp_path / "savegame.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    data["saveVersion"] = 0
    path.write_text(json.dumps(data), encoding="utf-8")

    bridge.advance()
    state = bridge.state
    before = state.model_dump_json()

    assert bridge.load_game() == "Save file is incompatible."
    assert bridge.state is state
    assert bridge.state.model_dump_json() == before


def test_corrupt_save_leaves_game_running(tmp_path):
    (tmp_path / "savegame.json").write_text("{ definitely not json", encoding="utf-8")
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(7)
    state = bridge.state

    assert bridge.load_game() == "Save file is corrupt."
    assert bridge.state is state


def test_save_failure_is_reported(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    bridge = SimBridge(save_dir=blocker)
    bridge.start_new_game(1)
    assert bridge.save_game() == "Save failed."


def test_advance_opens_service(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(3)
    assert not bridge.snapshot().service_open

    bridge.advance()
    snap = bridge.snapshot()
    assert snap.service_open
    assert snap.round == 1

    bridge.close_service()
    assert not bridge.snapshot().service_open
    assert "Manual close" in bridge.ui_logger.recent(1)[0].message


def test_game_starts_lazily(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    snap = bridge.snapshot()
    assert snap.week == 1
    assert snap.day == 1
    assert snap.money == 500.0


def test_listeners_survive_a_load(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(5)
    bridge.save_game()

    seen = []
    bridge.ui_logger.subscribe(seen.append)
    assert bridge.load_game() == "Loaded."
    bridge.open_service()
    assert seen and seen[-1].kind == "SERVICE"


def test_repay_and_reset(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(8)
    assert bridge.repay_debt(100.0) == "Nothing repaid."

    bridge.state.credit_lines[0].balance = 100.0
    assert bridge.repay_debt(40.0) == "Repaid $40.00."
    assert bridge.snapshot().debt == 60.0

    bridge.advance()
    bridge.reset_for_menu()
    snap = bridge.snapshot()
    assert (snap.service_open, snap.week, snap.day, snap.round) == (False, 1, 1, 0)


def test_unreadable_save_is_reported(tmp_path):
    (tmp_path / "savegame.json").mkdir()
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(4)
    state = bridge.state

    assert bridge.has_save()
    assert bridge.load_game() == "Save file could not be read."
    assert bridge.state is state


def test_bad_stream_is_rejected_before_play(tmp_path):
    bridge = SimBridge(save_dir=tmp_path)
    bridge.start_new_game(42)
    bridge.save_game()

    path = tmp_path / "savegame.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    raw = json.loads(zlib.decompress(base64.b64decode(data["payload"])))
    raw["rng"]["keys"] = [1, 2, 3]
    data["payload"] = base64.b64encode(zlib.compress(json.dumps(raw).encode("utf-8"))).decode("ascii")
    path.write_text(json.dumps(data), encoding="utf-8")

    assert bridge.load_game() == "Save file is corrupt."
    assert bridge.advance().unserved_count >= 0
