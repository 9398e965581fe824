"""
Money Manager - personal finance tracking backend.

Foundation layer: configuration, structured logging, database pool
and repositories.
"""

__version__ = "0.1.0"
