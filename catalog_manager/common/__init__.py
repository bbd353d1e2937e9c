# Common utilities
from .activity_log import ActivityLog, LogEntry, LogLevel
from .config_loader import get_section, load_config
from .log_config import setup_logging
