"""
EcoInsight climate and sustainability API.
"""

__version__ = "1.0.0"
