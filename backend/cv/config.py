"""CV pipeline constants and tunables."""
import os

# Preprocessing
BLUR_KERNEL = (5, 5)
CLOSE_KERNEL = (3, 3)

# Neural detector
DEFAULT_INPUT_SIZE = (416, 416)  # (width, height) when the model does not declare one
LETTERBOX_PAD_COLOR = (0, 0, 0)
DETECTION_CLASS_ID = 1
DETECTION_LABEL = "User_1"
LABEL_FONT_SCALE = 0.6
LABEL_THICKNESS = 1

# Blink tracker pool
LED_POOL_SIZE = 3
LED_BINARY_THRESHOLD = 200
LED_ON_BRIGHTNESS = 200.0  # mean ROI intensity above this counts as "on"
LED_MIN_ASPECT = 0.8
LED_MAX_ASPECT = 1.2
LED_MIN_AREA = 100
LED_MAX_AREA = 1000
LED_MATCH_DISTANCE_PX = 50.0
LED_HISTORY_SIZE = 30
LED_STANDARD_FREQUENCIES_HZ = (50.0, 100.0, 200.0)
LED_BOX_COLOR = (0, 255, 0)
LED_LABEL_COLOR = (0, 0, 255)
# Assumed rolling-shutter sample rate. A tuning knob, not a measurement.
SHUTTER_FPS = float(os.getenv("LIGHTTRACE_SHUTTER_FPS", "250"))

# Point smoother (constant-velocity Kalman)
KALMAN_PROCESS_NOISE = 1e-4
KALMAN_MEASUREMENT_NOISE = 1e-2

# Classification export
EXPORT_PADDING_PX = 30.0
EXPORT_LINE_THICKNESS = 40
EXPORT_SIZE = 28
EXPORT_LINE_COLOR = (0, 0, 0)

# Debug capture
DEBUG_CAPTURE_INTERVAL_SEC = 0.01
DEBUG_CAPTURE_MAX_IMAGES = 200
DEBUG_CAPTURE_LABEL = "tracking_debug"

# Latest-result slot shared with the presentation layer
RESULT_QUEUE_SIZE = 1
