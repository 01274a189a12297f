"""
Tests for the membership registry.

Tests cover:
1. Admission
2. Share issuance and ragequit
3. Voting weight lookup
"""

import pytest

from gaq.core.chain import Chain
from gaq.core.membership import MembershipRegistry, Member

ALICE = b"\x0a" * 20
BOB = b"\x0b" * 20


@pytest.fixture
def registry():
    chain = Chain()
    registry = MembershipRegistry(chain)
    chain.deploy(registry)
    return registry


class TestAdmission:
    """Tests for admitting members."""

    def test_add_member(self, registry):
        ok, err = registry.add_member(ALICE, shares=5)

        assert ok and err == ""
        assert registry.is_member(ALICE)
        assert registry.shares_of(ALICE) == 5
        assert registry.get_member(ALICE).joined_at == registry.chain.timestamp

    def test_loot_only_member_has_no_weight(self, registry):
        registry.add_member(BOB, shares=0, loot=10)
        assert registry.is_member(BOB)
        assert registry.shares_of(BOB) == 0

    def test_empty_member_rejected(self, registry):
        ok, err = registry.add_member(ALICE, shares=0)
        assert not ok
        assert "shares or loot" in err

    def test_duplicate_rejected(self, registry):
        registry.add_member(ALICE, shares=1)
        ok, err = registry.add_member(ALICE, shares=1)
        assert not ok
        assert "Already a member" in err

    def test_bad_address_rejected(self, registry):
        ok, err = registry.add_member(b"\x01", shares=1)
        assert not ok
        assert "20 bytes" in err

    def test_negative_shares_rejected(self, registry):
        ok, _ = registry.add_member(ALICE, shares=-1)
        assert not ok


class TestShares:
    """Tests for share changes."""

    def test_mint_shares(self, registry):
        registry.add_member(ALICE, shares=1)
        ok, _ = registry.mint_shares(ALICE, 2)
        assert ok
        assert registry.shares_of(ALICE) == 3

    def test_mint_to_non_member(self, registry):
        ok, err = registry.mint_shares(BOB, 2)
        assert not ok
        assert err == "Not a member"

    def test_ragequit(self, registry):
        registry.add_member(ALICE, shares=3, loot=4)
        ok, _ = registry.burn_shares(ALICE, 3, loot=4)

        assert ok
        assert registry.shares_of(ALICE) == 0
        assert not registry.is_member(ALICE)

    def test_ragequit_too_many(self, registry):
        registry.add_member(ALICE, shares=1)
        ok, err = registry.burn_shares(ALICE, 2)
        assert not ok
        assert "Insufficient shares" in err
        assert registry.shares_of(ALICE) == 1

    def test_readmission_after_ragequit(self, registry):
        registry.add_member(ALICE, shares=1)
        registry.burn_shares(ALICE, 1)
        ok, _ = registry.add_member(ALICE, shares=2)
        assert ok
        assert registry.shares_of(ALICE) == 2


class TestLookup:
    """Tests for weight lookups and statistics."""

    def test_non_member_weight_is_zero(self, registry):
        assert registry.shares_of(BOB) == 0
        assert registry.get_member(BOB) is None

    def test_totals(self, registry):
        registry.add_member(ALICE, shares=3)
        registry.add_member(BOB, shares=2, loot=7)

        assert registry.total_shares == 5
        assert registry.stats() == {"total_members": 2, "total_shares": 5, "total_loot": 7}

    def test_member_exists(self):
        assert not Member(address=ALICE).exists
        assert Member(address=ALICE, loot=1).exists


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
