"""
PATH: listings/models/__init__.py

Listings models export surface.
"""

from .plot import Plot
from .produce_listing import ProduceListing
from .tool import Tool

__all__ = [
    "Plot",
    "ProduceListing",
    "Tool",
]
