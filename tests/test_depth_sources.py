import json
from types import SimpleNamespace

import cv2
import numpy as np
import pytest

from depth_arm.io.file_camera import FileCamera


def _write_dataset(root, n=3, meta=None):
    depth_dir = root / "depth"
    depth_dir.mkdir()
    frames = []
    for i in range(n):
        d = np.zeros((12, 16), dtype=np.uint16)
        d[2:6, 3:9] = 1000 + i
        cv2.imwrite(str(depth_dir / f"{i:06d}.png"), d)
        frames.append(d)
    if meta is None:
        meta = {"intrinsics": {"fx": 200.0, "fy": 210.0, "cx": 8.0, "cy": 6.0}, "depth_scale": 0.0005, "fps": 10.0}
    (root / "meta.json").write_text(json.dumps(meta))
    return frames


def test_file_camera_replays_depth(tmp_path):
    frames = _write_dataset(tmp_path)
    cam = FileCamera(str(tmp_path))
    assert cam.open() is True

    out = []
    while True:
        f = cam.get_frame()
        if f is None:
            break
        out.append(f)
    cam.close()

    assert len(out) == 3
    for i, f in enumerate(out):
        assert f.frame_id == i
        assert f.depth.dtype == np.uint16
        assert np.array_equal(f.depth, frames[i])
        assert f.timestamp == pytest.approx(i / 10.0)
        assert f.depth_scale_m == pytest.approx(0.0005)
        assert f.dist_coeffs is None
    assert np.allclose(out[0].intrinsics, [200.0, 210.0, 8.0, 6.0])


def test_file_camera_uses_recorded_timestamps(tmp_path):
    meta = {
        "intrinsics": {"fx": 1.0, "fy": 1.0, "cx": 0.0, "cy": 0.0},
        "timestamps": [5.0, 5.5],
        "dist_coeffs": [0.1, 0.0, 0.0, 0.0, 0.0],
    }
    _write_dataset(tmp_path, n=2, meta=meta)
    cam = FileCamera(str(tmp_path))
    cam.open()
    f = cam.get_frame()
    assert f.timestamp == pytest.approx(5.0)
    assert f.depth_scale_m == pytest.approx(0.001)
    assert np.allclose(f.dist_coeffs, [0.1, 0.0, 0.0, 0.0, 0.0])


def test_file_camera_requires_meta(tmp_path):
    _write_dataset(tmp_path)
    (tmp_path / "meta.json").unlink()
    with pytest.raises(FileNotFoundError):
        FileCamera(str(tmp_path)).open()


def test_file_camera_requires_intrinsics(tmp_path):
    _write_dataset(tmp_path, meta={"fps": 30})
    with pytest.raises(ValueError):
        FileCamera(str(tmp_path)).open()


def test_unopened_file_camera_returns_none(tmp_path):
    assert FileCamera(str(tmp_path)).get_frame() is None


def test_realsense_open_fails_without_device(monkeypatch):
    pytest.importorskip("pyrealsense2")
    import depth_arm.io.realsense_camera as rsc

    monkeypatch.setattr(rsc.rs, "context", lambda: SimpleNamespace(query_devices=lambda: []))
    cam = rsc.RealSenseCamera()
    assert cam.open() is False
    assert cam.get_frame() is None
    cam.close()


def test_realsense_open_stops_pipeline_when_setup_fails(monkeypatch):
    pytest.importorskip("pyrealsense2")
    import depth_arm.io.realsense_camera as rsc

    stops = []

    def broken_device():
        raise RuntimeError("device disconnected")

    class FakePipeline:
        def start(self, cfg):
            return SimpleNamespace(get_device=broken_device)

        def stop(self):
            stops.append(True)

    monkeypatch.setattr(rsc.rs, "context", lambda: SimpleNamespace(query_devices=lambda: [object()]))
    monkeypatch.setattr(rsc.rs, "config", lambda: SimpleNamespace(enable_stream=lambda *args: None))
    monkeypatch.setattr(rsc.rs, "pipeline", FakePipeline)

    cam = rsc.RealSenseCamera()
    assert cam.open() is False
    assert stops == [True]
    assert cam.get_frame() is None
