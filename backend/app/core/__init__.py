"""
Core package — cross-cutting concerns.

Modules:
    config    — environment variables & settings
    logging   — structured JSON logging
    errors    — exception hierarchy & handlers
    backend   — process-wide store / transport handle
    health    — health check aggregation
"""
