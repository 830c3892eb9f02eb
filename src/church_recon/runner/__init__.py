"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- probe: Detect statement file types
- ingest: Parse statements into normalized transactions
- reconcile: Match statements against church contributor lists
- learned: Inspect or forget learned associations
- status: Store statistics
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
