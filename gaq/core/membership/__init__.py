"""
GAQ Membership Module.

Tracks guild members and the voting shares that authorize bid acceptance.
"""

from gaq.core.membership.registry import (
    MembershipRegistry,
    Member,
)

__all__ = [
    "MembershipRegistry",
    "Member",
]
