"""Taskify — task-tracking backend with real-time fan-out.

Persists users and tasks, and pushes every task mutation to the
browsers that hold a live WebSocket open.
"""

__version__ = "0.1.0"
