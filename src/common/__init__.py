"""
Common utilities for tfstate-bootstrap.

Modules:
- terminal: rich console output, prompts and logging setup
"""

__all__ = [
    "terminal",
]
