from pokiface.core.config import get_config
from pokiface.core.logging import setup_logging

__all__ = ["get_config", "setup_logging"]
