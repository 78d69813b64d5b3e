"""
ZK VIP Services
===============

HTTP services for the ZK VIP admission platform.

Services:
- admission: Groups, balance attestations and group admission
"""

__all__ = [
    "admission",
]
