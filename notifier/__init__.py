"""Push notification dispatch pipeline"""

__version__ = "1.0.0"
