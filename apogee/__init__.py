"""
apogee — environment-aware shell initialization generator.
"""

__version__ = "0.1.0"
