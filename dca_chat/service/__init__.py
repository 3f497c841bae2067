from .orchestrator import ChatOrchestrator, history_dicts

__all__ = ["ChatOrchestrator", "history_dicts"]
