"""Core layer: evidence catalog, evidence access, configuration and logging."""

from .config import AppConfig, load_app_config  # noqa: F401
from .database import init_db, migrate  # noqa: F401
