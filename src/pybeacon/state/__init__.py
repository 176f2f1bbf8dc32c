"""State/store layer.

This package is the single source of truth for how normalized provider
events become a region's snapshot and how observers learn about changes.
"""
