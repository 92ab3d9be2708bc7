"""Storage collaborators for sales history and saved predictions."""

from .interface import PredictionStore, StorageError
from .memory import InMemoryStore
