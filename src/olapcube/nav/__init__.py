"""
Navigation module: Exploration sessions and operation history.
"""

from olapcube.nav.session import ExplorationSession, SessionState

__all__ = [
    "ExplorationSession", "SessionState",
]
