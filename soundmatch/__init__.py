"""Soundmatch - client side of a remote audio fingerprinting oracle.

The fingerprinting itself happens in the oracle service. This package
provides:
- an HTTP client for its query and insert operations
- a consolidation heuristic that turns noisy similarity scores into matches

References:
- EmySound: https://emysound.com
"""

__version__ = "0.1.0"

from .client import OracleClient, OracleError
from .matcher import FingerprintResult, MatchConsolidator, consolidate

__all__ = [
    "FingerprintResult",
    "MatchConsolidator",
    "OracleClient",
    "OracleError",
    "consolidate",
]
