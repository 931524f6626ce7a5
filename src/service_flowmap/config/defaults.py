"""Default configurations for service-flowmap."""

from pathlib import Path

# Radial layout (canvas pixels)
BASE_RADIUS = 300  # Minimum first-ring radius
SPACING_FACTOR = 100  # Extra radius per first-ring node
CHILD_BASE_RADIUS = 150  # Minimum radius around an expanded node
CHILD_SPACING = 60  # Extra radius per child of an expanded node
CHILD_MAX_RADIUS = 250  # Stays below BASE_RADIUS
FALLBACK_GAP = 200  # Distance from the outermost ring to the fallback ring

# Flat-mode viewport, also used when no browser size is known
VIEWPORT_WIDTH = 1000
VIEWPORT_HEIGHT = 800

# Service nodes render as squares of this size
NODE_SIZE = 96

# Storage
DEFAULT_DATA_DIR = ".flowmap"
DEFAULT_DATABASE_NAME = "flowmap.db"
DEFAULT_CONFIG_FILENAME = "flowmap.yaml"

# Server
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
MAX_SESSIONS = 100  # Least recently used sessions are evicted beyond this
SESSION_TTL_SECONDS = 3600.0  # Idle sessions expire after this

# Remote API
HTTP_TIMEOUT_SECONDS = 30.0


def get_default_database_path(root: Path | None = None) -> Path:
    """Get default SQLite database path."""
    return (root or Path.cwd()) / DEFAULT_DATA_DIR / DEFAULT_DATABASE_NAME


def get_default_config_path(root: Path | None = None) -> Path:
    """Get default configuration file path."""
    return (root or Path.cwd()) / DEFAULT_CONFIG_FILENAME
