"""
Core infrastructure: configuration, logging, database pool and errors.
"""
