"""Quiz and progress defaults shared across UI, server and core layers."""

DEFAULT_TIME_LIMIT_MINUTES: int = 30
DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_PASSING_SCORE: int = 70
DEFAULT_QUESTION_POINTS: int = 1
MIN_OPTIONS_PER_QUESTION: int = 2
MAX_OPTIONS_PER_QUESTION: int = 6
TICK_INTERVAL_SECONDS: int = 1
TIME_LIMIT_WARNING_WINDOW_SECONDS: int = 60
PROGRESS_WRITE_ATTEMPTS: int = 3
