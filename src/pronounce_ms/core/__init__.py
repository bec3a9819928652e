"""
Core Infrastructure for pronounce-ms.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - errors.py: Service errors and their HTTP status mapping
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics and response time tracking
"""
