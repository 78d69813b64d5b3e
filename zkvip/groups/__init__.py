"""
Groups Module
=============

Balance-gated groups and the admission transition.

Usage:
    from zkvip.groups import GroupRegistry

    registry = GroupRegistry(proof_system)
    membership = await registry.admit("zk-builders", member_id, result)
"""

from zkvip.groups.registry import (
    DEFAULT_GROUPS,
    AdmissionDenied,
    Group,
    GroupEvent,
    GroupExistsError,
    GroupListener,
    GroupNotFoundError,
    GroupRegistry,
    Membership,
    slugify,
)


__all__ = [
    "GroupRegistry",
    "Group",
    "Membership",
    "GroupEvent",
    "GroupListener",
    "DEFAULT_GROUPS",
    "AdmissionDenied",
    "GroupExistsError",
    "GroupNotFoundError",
    "slugify",
]
