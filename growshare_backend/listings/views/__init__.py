from .listings import PlotViewSet, ProduceListingViewSet, ToolViewSet

__all__ = [
    "PlotViewSet",
    "ProduceListingViewSet",
    "ToolViewSet",
]
