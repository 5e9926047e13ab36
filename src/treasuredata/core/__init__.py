"""Core: configuration, errors, domain models and interfaces.

Nothing in here performs I/O.
"""
