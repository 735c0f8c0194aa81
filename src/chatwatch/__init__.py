"""chatwatch - follow coding agent conversations running in tmux."""

from chatwatch.config import Settings, load_settings
from chatwatch.models import AgentTool, DetectedSource, Message
from chatwatch.supervisor import WatchState, WatchSupervisor

__version__ = "0.1.0"

__all__ = ["AgentTool", "DetectedSource", "Message", "Settings", "WatchState", "WatchSupervisor", "load_settings"]
