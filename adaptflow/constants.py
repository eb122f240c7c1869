"""Default thresholds used by the engine."""

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_HISTORY_LOAD_LIMIT = 100

MIN_EXECUTIONS_FOR_CONFIG = 10
MIN_EXECUTIONS_FOR_OPTIMIZATION = 20
CONFIDENCE_SATURATION = 100

PARALLELIZE_DURATION_THRESHOLD_MS = 5000
CHEAPER_MODEL_ACCURACY_THRESHOLD = 0.95
CHEAPER_MODEL_COST_THRESHOLD = 0.001
CACHING_DUPLICATE_THRESHOLD = 0.3
MAX_TOKENS_REDUCTION_FACTOR = 0.7

DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0

METRICS_KEY = "_metrics"
