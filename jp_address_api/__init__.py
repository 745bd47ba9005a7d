"""
Japanese address parser API package.

This package exposes an HTTP service that validates free-text Japanese
addresses, parses them under a deadline and publishes Prometheus metrics about
the parse pipeline. See DESIGN.md for full details.
"""

__version__ = "0.1.0"

__all__ = ["config", "__version__"]
