from .session import SearchOrchestrator, panel_type_for

__all__ = ["SearchOrchestrator", "panel_type_for"]
