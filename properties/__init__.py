"""
properties package

Property panel for editing the selected card or edge.
"""

from properties.dock import PropertyPanel

__all__ = ["PropertyPanel"]
