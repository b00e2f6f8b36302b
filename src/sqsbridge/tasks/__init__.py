from . import message

__all__ = ["message"]
