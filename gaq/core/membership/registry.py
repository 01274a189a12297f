"""
Membership Registry - Voting-share ledger gating bid acceptance.

This module provides:
- Member admission with an initial share grant
- Share issuance and burning (ragequit)
- Non-voting loot, which never counts towards acceptance weight

The queue only ever reads `shares_of(account)`.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from gaq.core.chain import Chain, Contract
from gaq.crypto import short_hex
from gaq.utils.logger import get_logger
from gaq.utils.validation import validate_address, validate_amount

logger = get_logger("membership")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class Member:
    """
    A guild member.

    Attributes:
        address: Member address
        shares: Voting shares (acceptance weight)
        loot: Non-voting economic stake
        joined_at: Chain timestamp of admission
    """
    address: bytes
    shares: int = 0
    loot: int = 0
    joined_at: int = 0

    @property
    def exists(self) -> bool:
        return self.shares > 0 or self.loot > 0


# =============================================================================
# Membership Registry
# =============================================================================


class MembershipRegistry(Contract):
    """
    Registry of guild members and their voting shares.
    """

    def __init__(self, chain: Chain, address: Optional[bytes] = None):
        super().__init__(chain, address)

        # Address -> Member
        self.members: Dict[bytes, Member] = {}

    # =========================================================================
    # Admission
    # =========================================================================

    def add_member(self, address: bytes, shares: int, loot: int = 0) -> Tuple[bool, str]:
        """
        Admit a new member.

        Returns:
            (success, error_message)
        """
        valid, err = validate_address(address)
        if not valid:
            return False, err
        for value, name in ((shares, "shares"), (loot, "loot")):
            valid, err = validate_amount(value, name)
            if not valid:
                return False, err
        if shares == 0 and loot == 0:
            return False, "Member needs shares or loot"

        with self.chain.execute():
            existing = self.members.get(address)
            if existing is not None and existing.exists:
                return False, "Already a member"

            self._journal_key(self.members, address)
            self.members[address] = Member(
                address=address,
                shares=shares,
                loot=loot,
                joined_at=self.chain.timestamp,
            )

        logger.info(f"Admitted member {short_hex(address)} with {shares} shares, {loot} loot")
        return True, ""

    # =========================================================================
    # Shares
    # =========================================================================

    def mint_shares(self, address: bytes, amount: int) -> Tuple[bool, str]:
        """Issue additional shares to an existing member."""
        valid, err = validate_amount(amount, allow_zero=False)
        if not valid:
            return False, err

        with self.chain.execute():
            member = self.members.get(address)
            if member is None or not member.exists:
                return False, "Not a member"
            self._journal_key(self.members, address)
            self.members[address] = replace(member, shares=member.shares + amount)

        logger.debug(f"Member {short_hex(address)} received {amount} shares")
        return True, ""

    def burn_shares(self, address: bytes, shares: int, loot: int = 0) -> Tuple[bool, str]:
        """
        Burn shares and loot (ragequit).

        Returns:
            (success, error_message)
        """
        for value, name in ((shares, "shares"), (loot, "loot")):
            valid, err = validate_amount(value, name)
            if not valid:
                return False, err

        with self.chain.execute():
            member = self.members.get(address)
            if member is None or not member.exists:
                return False, "Not a member"
            if member.shares < shares:
                return False, f"Insufficient shares: {member.shares} < {shares}"
            if member.loot < loot:
                return False, f"Insufficient loot: {member.loot} < {loot}"

            self._journal_key(self.members, address)
            self.members[address] = replace(
                member, shares=member.shares - shares, loot=member.loot - loot
            )

        logger.info(f"Member {short_hex(address)} ragequit {shares} shares, {loot} loot")
        return True, ""

    # =========================================================================
    # Lookup
    # =========================================================================

    def shares_of(self, account: bytes) -> int:
        """Voting weight of `account` (0 for non-members)."""
        member = self.members.get(account)
        return member.shares if member else 0

    def get_member(self, address: bytes) -> Optional[Member]:
        return self.members.get(address)

    def is_member(self, address: bytes) -> bool:
        member = self.members.get(address)
        return member is not None and member.exists

    @property
    def total_shares(self) -> int:
        return sum(m.shares for m in self.members.values())

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict:
        """Get registry statistics."""
        return {
            "total_members": sum(1 for m in self.members.values() if m.exists),
            "total_shares": self.total_shares,
            "total_loot": sum(m.loot for m in self.members.values()),
        }


__all__ = [
    "MembershipRegistry",
    "Member",
]
