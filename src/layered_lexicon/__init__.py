"""Layered Lexicon package."""

from .config import EngineConfig, GeneratorConfig, LimitsConfig, load_config
from .engine import GenerationEngine, GenerationRequest, GenerationResult
from .errors import (
    AuthorizationError,
    EngineError,
    LifecycleError,
    NotificationError,
    UnavailableError,
    ValidationError,
)
from .gate import OpenGate, PermissionGate, RoleGate
from .loaders import build_engine, load_corpus
from .vocabulary import NO_TOKEN, PartOfSpeech

__all__ = [
    "AuthorizationError",
    "EngineConfig",
    "EngineError",
    "GenerationEngine",
    "GenerationRequest",
    "GenerationResult",
    "GeneratorConfig",
    "LifecycleError",
    "LimitsConfig",
    "NO_TOKEN",
    "NotificationError",
    "OpenGate",
    "PartOfSpeech",
    "PermissionGate",
    "RoleGate",
    "UnavailableError",
    "ValidationError",
    "build_engine",
    "load_config",
    "load_corpus",
]

__version__ = "0.1.0"
