import json

from forest.frontier import FrontierStore
from forest.models import BranchTag, DailySchedule, FrontierNode, LearningHistory
from forest.scheduler import synthesize_schedule
from forest.store import DATA_DIR_ENV, JsonStore, default_data_dir

from conftest import make_config, make_node


def test_data_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path))
    assert default_data_dir() == tmp_path
    assert JsonStore().base_dir == tmp_path


def test_missing_files_load_as_none(store):
    assert store.load_config("nope") is None
    assert store.load_hta("nope") is None
    assert store.load_schedule("nope", "2025-11-03") is None
    assert store.load_history("nope").completed_topics == []


def test_corrupt_file_loads_as_none(store):
    path = store.project_dir("broken") / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    assert store.load_config("broken") is None


def test_config_and_index(store):
    config = make_config(project_id="guitar", meal_times=[])
    assert store.save_config(config)
    assert store.register_project("guitar")
    assert store.register_project("guitar")

    loaded = store.load_config("guitar")
    assert loaded == config
    assert loaded.meal_times == []
    assert store.list_projects() == ["guitar"]


def test_config_ignores_retired_keys(store):
    config = make_config(project_id="guitar")
    data = dict(config.to_dict(), transition_time="5 minutes")
    path = store.project_dir("guitar") / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(data), encoding="utf-8")

    loaded = store.load_config("guitar")
    assert loaded == config
    assert "transition_time" not in loaded.to_dict()


def test_hta_per_learning_path(store):
    node = make_node("n1", prerequisites=["x"], path_focus="Jazz")
    node.branch_type = BranchTag.custom("Jazz")
    general = FrontierStore(project_id="guitar", frontier_nodes=[make_node("g")])
    jazz = FrontierStore(project_id="guitar", path_name="Jazz", frontier_nodes=[node])
    jazz.complete(make_node("old", magnitude=8), 4)

    assert store.save_hta(general) and store.save_hta(jazz)

    loaded = store.load_hta("guitar", "Jazz")
    assert loaded.frontier_nodes == [node]
    assert loaded.completed_ids() == ["old"]
    assert loaded.completed_nodes[0].actual_difficulty == 4
    assert store.load_hta("guitar").find("g") is not None


def test_schedule_file_layout(store):
    schedule = synthesize_schedule(make_config(project_id="guitar"), [make_node()], [], "2025-11-03")
    assert store.save_schedule(schedule)

    raw = json.loads((store.project_dir("guitar") / "day_2025-11-03.json").read_text())
    assert raw["total_blocks"] == schedule.total_blocks
    assert raw["time_blocks"][0]["time"] == "8:00 AM"

    loaded = store.load_schedule("guitar", "2025-11-03")
    assert isinstance(loaded, DailySchedule)
    assert [b.start for b in loaded.time_blocks] == [b.start for b in schedule.time_blocks]
    assert loaded.coverage_problems() == []


def test_history_round_trip(store):
    history = LearningHistory()
    history.record("Tuning", "2025-11-01", learned="Use a clip-on tuner", difficulty=2, next_questions="Drop D?")
    assert store.save_history("guitar", None, history)
    assert store.load_history("guitar") == history


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    store = JsonStore(blocker)
    assert store.save_config(make_config()) is False


def test_unknown_node_fields_survive(store):
    node = FrontierNode.from_dict({"id": "a", "title": "A", "source_url": "https://example.org"})
    assert node.to_dict()["source_url"] == "https://example.org"
    assert node.branch_type.value == "practical"
