from . import backup

__all__ = ["backup"]
