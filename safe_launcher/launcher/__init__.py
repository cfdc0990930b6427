# Session core: guarded engine access and application key registry
from safe_launcher.launcher.engine_guard import EngineGuard as EngineGuard
from safe_launcher.launcher.key_registry import KeyRegistry as KeyRegistry
from safe_launcher.launcher.session import Session as Session

__all__ = ["EngineGuard", "KeyRegistry", "Session"]
