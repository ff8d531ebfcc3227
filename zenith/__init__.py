"""
Zenith - Source Package

A personal finance tracker: transactions, savings goals, gamification
points, and AI-generated budget plans per goal.

DESIGN PRINCIPLES:
1. Derived state is recomputed, never patched
2. Goal completion is monotonic
3. The AI advises; it never mutates state on its own
4. A failing AI call degrades one goal's plan status, nothing more
5. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Zenith Team"
