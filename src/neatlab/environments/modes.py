"""
Task variants of the target-seeking environment.
"""

ENVIRONMENT_MODES = {
    "target_seeker": {
        "id"          : "target_seeker",
        "name"        : "Target Seeker",
        "description" : "Agent learns to reach the goal you place.",
        "input_count" : 7,
        "output_count": 2,
        "difficulty"  : 1,
    },
    "obstacle_avoid": {
        "id"          : "obstacle_avoid",
        "name"        : "Obstacle Avoidance",
        "description" : "Reach the goal while avoiding wall collisions.",
        "input_count" : 10,
        "output_count": 2,
        "difficulty"  : 2,
        "default_obstacles": [
            {"x": 220, "y": 110, "w": 26, "h": 190},
            {"x": 430, "y": 210, "w": 26, "h": 190},
        ],
    },
    "multi_target": {
        "id"          : "multi_target",
        "name"        : "Multi Target",
        "description" : "Collect multiple goals in order as fast as possible.",
        "input_count" : 9,
        "output_count": 2,
        "difficulty"  : 3,
    },
}

DEFAULT_ENV_MODE = "target_seeker"

def normalize_environment_mode(mode) -> str:
    """
    Return 'mode' if it names a known task variant, the default variant otherwise.
    """
    if isinstance(mode, str) and mode in ENVIRONMENT_MODES:
        return mode
    return DEFAULT_ENV_MODE
