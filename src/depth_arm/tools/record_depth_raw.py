import argparse
import os
import json
import logging
import sys
import cv2
from datetime import datetime

from depth_arm.io.realsense_camera import RealSenseCamera

logger = logging.getLogger("depth_arm.tools.record_depth_raw")

def main(argv=None):
    ap = argparse.ArgumentParser(description="Record a RealSense depth dataset for FileCamera")
    ap.add_argument("--out", default=None, help="output directory (default: data/raw_<timestamp>)")
    ap.add_argument("--frames", type=int, default=100)
    ap.add_argument("--fps", type=int, default=30)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    out_root = args.out or os.path.join(os.getcwd(), "data", "raw_" + datetime.now().strftime("%Y%m%d_%H%M%S"))
    depth_dir = os.path.join(out_root, "depth")
    os.makedirs(depth_dir, exist_ok=True)

    cam = RealSenseCamera(fps=args.fps)
    if not cam.open():
        logger.error("Failed to open camera.")
        return 1

    timestamps = []
    try:
        for i in range(int(args.frames)):
            f = cam.get_frame()
            if f is None:
                break
            timestamps.append(float(f.timestamp))
            cv2.imwrite(os.path.join(depth_dir, f"{i:06d}.png"), f.depth)
        meta = cam.get_calibration_data()
    finally:
        cam.close()

    meta["fps"] = float(args.fps)
    meta["timestamps"] = timestamps
    with open(os.path.join(out_root, "meta.json"), "w", encoding="utf-8") as fw:
        json.dump(meta, fw, ensure_ascii=False, indent=2)

    logger.info("Recorded %d frames to %s", len(timestamps), out_root)
    return 0

if __name__ == "__main__":
    sys.exit(main())
