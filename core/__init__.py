"""
Core module for shared domain infrastructure.

This module contains:
- Domain events, exceptions and value objects
- Cache, event bus and transaction abstractions
- Prometheus metrics and scheduled tasks
"""
