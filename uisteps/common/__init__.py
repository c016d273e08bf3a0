"""
Package: uisteps.common
Shared logging helpers
"""
