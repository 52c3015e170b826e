"""
Core utilities: shared exceptions and cross-cutting concerns.
"""
