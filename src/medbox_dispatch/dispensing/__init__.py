from .orchestrator import DispenseOrchestrator

__all__ = ["DispenseOrchestrator"]
