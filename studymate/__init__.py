"""Local-first group chat, study session and notification cache for StudyMate."""
from .main import StudyMateClient, lifespan

__version__ = "1.0.0"

__all__ = ["StudyMateClient", "lifespan"]
