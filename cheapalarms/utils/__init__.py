from .state import StateManager, state_manager

__all__ = ["StateManager", "state_manager"]
