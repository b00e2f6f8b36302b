from .app import SQSBridgeApp, create_app
from .config import Settings, get_settings

__all__ = ["SQSBridgeApp", "Settings", "create_app", "get_settings"]
