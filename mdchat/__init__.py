__version__ = "0.1.0"

from .core import MdChatEngine, list_sections
from .mdchat import pipeline, run_mdchat

__all__ = ["MdChatEngine", "list_sections", "pipeline", "run_mdchat"]
