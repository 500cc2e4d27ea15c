"""
Smart Calendar - scheduling-conflict and recurrence-expansion engine

This package provides the core of a personal calendar:
- Expands recurring event templates into concrete instances
- Detects overlapping events and resolves conflicts by priority
- Validates AI-proposed reschedules before applying them
- Runs a periodic smart-alert (reminder/proximity) evaluator
"""

__version__ = "1.0.0"
__author__ = "Smart Calendar Team"
