"""Persistence of analyzed CVs."""

from .models import Base, CVResponse
from .repository import CVResponseRepository

__all__ = ["Base", "CVResponse", "CVResponseRepository"]
