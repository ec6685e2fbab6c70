"""
Stock Kernel - period close core

Multi-location stock accounting periods with:
- Per-location readiness gated by reconciliation
- Two-phase approval of period close
- Atomic, versioned closing snapshots
- Roll-forward of closing values into the next period
"""

__version__ = "0.1.0"
