"""Shared classification and geo constants.

Centralizes the thresholds the rule engine and geofence evaluator use so
they can be documented and tuned in one place.
"""

# Mean Earth radius in meters (haversine)
EARTH_RADIUS_M = 6371000.0

# Prediction codes and their labels
NORMAL = 0
PLAYING = 1
DANGER = 2
LABELS = {NORMAL: "normal", PLAYING: "playing", DANGER: "danger"}

# Danger: high HR with a sharp jump or heavy movement, or a freeze response
DANGER_HR_MEAN = 135.0
DANGER_HR_GRADIENT = 15.0
DANGER_ACC_VARIANCE = 0.8
FREEZE_HR_MEAN = 140.0
FREEZE_ACC_VARIANCE = 0.05

# Playing: any one of these bands
PLAYING_HR_MIN = 110.0
PLAYING_HR_MAX = 145.0
PLAYING_ACC_VARIANCE_MIN = 0.15
PLAYING_ACC_VARIANCE_MAX = 0.8
PLAYING_ACC_MEAN_MIN = 1.8
PLAYING_ACC_MEAN_MAX = 3.0

# Confidence ceiling for every branch
MAX_CONFIDENCE = 99.0

# Playing classifications above this confidence raise a movement notice
MOVEMENT_NOTICE_CONFIDENCE = 90.0

# Identifier stored on assessments produced by the local rule engine
LOCAL_MODEL_ID = "local-simulator"
