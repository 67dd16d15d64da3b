# members/models/__init__.py

from .member import Member

__all__ = ["Member"]
