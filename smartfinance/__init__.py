"""
Smart Finance - Source Package

State reconciliation and persistence for a personal finance ledger:
local storage, backups, and cloud sync across devices.

DESIGN PRINCIPLES:
1. State is replaced, never edited in place
2. The device copy is always written first
3. Fail early, fail visibly
4. Every sync step is logged
5. Sync backends are swappable
"""

__version__ = "1.1.0"
__author__ = "Smart Finance Team"
