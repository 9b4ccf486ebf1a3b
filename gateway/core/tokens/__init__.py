from .models import Token
from .registry import TokenRegistry

__all__ = ["Token", "TokenRegistry"]
