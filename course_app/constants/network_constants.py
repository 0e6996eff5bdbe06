"""Network configuration constants for the student API."""

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8040
API_TITLE: str = "CourseQt Student API"
