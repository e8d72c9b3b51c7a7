import argparse
import json
import logging
import math
import os
import sys
from typing import Optional

from depth_arm.core.config_loader import load_config
from depth_arm.core.types import ArmPose, ArmState
from depth_arm.io.file_camera import FileCamera
from depth_arm.logic.arm_pipeline import ArmPipeline

logger = logging.getLogger("depth_arm.tools.run_arm_tracking")


def _pose_record(frame_id: int, pose: Optional[ArmPose], state: ArmState) -> dict:
    if pose is None:
        return {"frame_id": frame_id, "state": state.value}
    angle = pose.bend_angle_deg
    return {
        "frame_id": frame_id,
        "timestamp": pose.timestamp,
        "state": pose.state.value,
        "hand": [float(x) for x in pose.hand],
        "elbow": [float(x) for x in pose.elbow],
        "shoulder": [float(x) for x in pose.shoulder],
        "bend_angle_deg": None if math.isnan(angle) else angle,
    }


def main(argv=None):
    ap = argparse.ArgumentParser(description="Track one arm in a depth stream")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--data", help="dataset root containing depth/ and meta.json")
    src.add_argument("--realsense", action="store_true", help="read from the first RealSense device")
    ap.add_argument("--config", default="config.json")
    ap.add_argument("--out", default=None, help="optional JSONL output path")
    ap.add_argument("--max-frames", type=int, default=0, help="0 = until the source ends")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    if args.realsense:
        from depth_arm.io.realsense_camera import RealSenseCamera
        rs_cfg = config.get("camera", {}).get("realsense", {})
        cam = RealSenseCamera(
            depth_width=int(rs_cfg.get("width", 640)),
            depth_height=int(rs_cfg.get("height", 480)),
            fps=int(rs_cfg.get("fps", 30)),
            preset=str(rs_cfg.get("preset", "high_accuracy")),
        )
    else:
        cam = FileCamera(args.data)

    if not cam.open():
        logger.error("Failed to open depth source.")
        return 1

    pipeline = ArmPipeline(config)
    out_file = None
    if args.out:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        out_file = open(args.out, "w", encoding="utf-8")

    n = 0
    try:
        while True:
            frame = cam.get_frame()
            if frame is None:
                break
            pose = pipeline.process(frame)
            rec = _pose_record(frame.frame_id, pose, pipeline.arm.state)
            if out_file is not None:
                out_file.write(json.dumps(rec) + "\n")
            if pose is not None:
                logger.info("frame %d %s bend=%.1f", frame.frame_id, pose.state.value, pose.bend_angle_deg)
            n += 1
            if args.max_frames and n >= int(args.max_frames):
                break
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        cam.close()
        if out_file is not None:
            out_file.close()

    logger.info("Processed %d frames", n)
    return 0


if __name__ == "__main__":
    sys.exit(main())
