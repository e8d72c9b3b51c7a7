import json

from depth_arm.algo.arm import ArmConfig
from depth_arm.algo.cluster_tracker import ClusterConfig
from depth_arm.algo.segmentation import SegmentationConfig
from depth_arm.core.config_loader import DEFAULT_CONFIG, load_config


def test_missing_file_returns_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config(str(tmp_path / "nope" / "config.json"))
    assert cfg == DEFAULT_CONFIG
    cfg["kmeans"]["k"] = 99
    assert DEFAULT_CONFIG["kmeans"]["k"] != 99


def test_user_sections_merge_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "kmeans": {"k": 8},
        "arm": {"dxdz_threshold": 3.5},
        "extra": 1,
    }))
    cfg = load_config(str(path))
    assert cfg["kmeans"]["k"] == 8
    assert cfg["kmeans"]["restarts"] == DEFAULT_CONFIG["kmeans"]["restarts"]
    assert cfg["arm"]["dxdz_threshold"] == 3.5
    assert cfg["arm"]["smoothing_factor"] == DEFAULT_CONFIG["arm"]["smoothing_factor"]
    assert cfg["extra"] == 1


def test_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{ not json")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_dataclasses_ignore_unknown_keys():
    seg = SegmentationConfig.from_dict({"manhattan_radius": 3, "bogus": True})
    assert seg.manhattan_radius == 3
    assert not hasattr(seg, "bogus")
    km = ClusterConfig.from_dict(DEFAULT_CONFIG["kmeans"])
    assert km.k == DEFAULT_CONFIG["kmeans"]["k"]
    arm = ArmConfig.from_dict({"max_missed_steps": 1})
    assert arm.max_missed_steps == 1
    assert arm.dxdz_threshold == ArmConfig().dxdz_threshold
