"""
CheapAlarms admin gateway and data layer
"""

__version__ = "1.0.0"
