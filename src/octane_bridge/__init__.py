"""
GitHub Actions to ALM Octane bridge
"""

__version__ = "24.4.1"
