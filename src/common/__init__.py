"""
Common utilities for utxo-relay.

Modules:
- config: environment/SSM configuration and logging setup
- utxo_api: HTTP client for published encrypted outputs
"""

__all__ = [
    "config",
    "utxo_api",
]
