"""Define shared constants for the task workflow engine."""

STATE_DIR_NAME = ".taskflow"
CONFIG_FILE = "config.yaml"
TASKS_FILE = "tasks.yaml"
TASKS_LOCK_FILE = "tasks.lock"

# Pointer resolver
COLUMN_HIT_MARGIN = 20.0
POINTER_VICINITY = 8.0

# Remote service
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_API_BASE_URL = "http://localhost:5000/api"

# Windows byte-range lock size for FileLock.
WINDOWS_LOCK_BYTES = 1

# Column titles shown on the board.
COLUMN_TITLES = {
    "PENDING": "To Do",
    "IN_PROGRESS": "In Progress",
    "DONE": "Done",
    "COMPLETED": "Completed",
}
