"""Service modules"""
from .aggregator import PortfolioAggregator
from .loading import ProgressiveLoadingController
from .sync import SyncOrchestrator

__all__ = ["PortfolioAggregator", "ProgressiveLoadingController", "SyncOrchestrator"]
