"""
Finance Tracker - Source Package

A personal finance tracker: expenses and income, optionally recurring,
optionally itemized, with day/month/year and per-category reporting and
receipt scanning through an image-understanding API.

DESIGN PRINCIPLES:
1. Validate at the boundary, trust the model inside
2. Fail early, fail visibly
3. "Today" is always passed in, never read implicitly
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
