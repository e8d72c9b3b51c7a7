import copy
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "camera": {
        "type": "realsense",
        "realsense": {
            "preset": "high_accuracy",
            "width": 640,
            "height": 480,
            "fps": 30
        }
    },
    "segmentation": {
        "enabled": True,
        "max_dist_m": 0.05,
        "manhattan_radius": 2
    },
    "point_cloud": {
        "subsample_factor": 4
    },
    "kmeans": {
        "k": 12,
        "restarts": 3,
        "max_iter": 20,
        "epsilon": 0.001,
        "connect_threshold_m": 0.15,
        "seed": None
    },
    "arm": {
        "start_pos": [0.0, 0.0, 0.5],
        "max_dist_to_start_m": 0.3,
        "dxdz_threshold": 2.0,
        "smoothing_factor": 0.5,
        "max_missed_steps": 5
    }
}

def load_config(config_path="config.json"):
    """
    Loads configuration from a JSON file.
    If the file doesn't exist, returns default configuration.
    """
    defaults = copy.deepcopy(DEFAULT_CONFIG)

    if not os.path.exists(config_path):
        # Try looking in parent directories or typical locations
        possible_paths = [
            os.path.join("..", config_path),
            os.path.join("..", "..", config_path),
            os.path.join(os.path.dirname(__file__), "..", "..", "..", config_path)
        ]
        for p in possible_paths:
            if os.path.exists(p):
                config_path = p
                break
        else:
            logger.warning("Config file %s not found. Using defaults.", config_path)
            return defaults

    try:
        with open(config_path, 'r') as f:
            user_config = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Error loading config %s: %s. Using defaults.", config_path, e)
        return defaults

    # Section-level merge: nested dicts are updated, everything else replaced
    config = defaults
    for key, value in user_config.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    logger.info("Loaded config from %s", config_path)
    return config
