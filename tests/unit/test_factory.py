"""
Tests for QueueFactory.

Tests cover:
1. Queue creation and QueueCreated event
2. Per-chain defaults
3. Isolation between instances
"""

import pytest

from gaq.core.chain import Chain
from gaq.core.config import GAQConfig
from gaq.core.errors import AlreadyInitialized, NotFullMember
from gaq.core.membership import MembershipRegistry
from gaq.core.queue import BidEscrowQueue, QueueFactory
from gaq.core.token import ERC20Token
from gaq.crypto import contract_address

BIDDER = b"\x01" * 20
MEMBER = b"\x02" * 20
DESTINATION = b"\x03" * 20


@pytest.fixture
def setup():
    chain = Chain(chain_id=100)
    token = ERC20Token(chain)
    chain.deploy(token)
    guild = MembershipRegistry(chain)
    chain.deploy(guild)
    guild.add_member(MEMBER, shares=2)
    factory = QueueFactory(chain, config=GAQConfig(chain_id=100, default_min_shares=2))
    return chain, token, guild, factory


class TestCreate:
    """Tests for queue creation."""

    def test_create_returns_initialized_queue(self, setup):
        chain, token, guild, factory = setup
        address = factory.create(token.address, guild.address, DESTINATION, 30, 1)

        queue = factory.get_queue(address)
        assert isinstance(queue, BidEscrowQueue)
        assert queue.initialized
        assert queue.config.lockup_duration == 30
        assert chain.contract_at(address) is queue

    def test_address_derived_from_factory(self, setup):
        chain, token, guild, factory = setup
        first = factory.create(token.address, guild.address, DESTINATION, 30, 1)
        second = factory.create(token.address, guild.address, DESTINATION, 30, 1)

        assert first == contract_address(factory.address, 0)
        assert second == contract_address(factory.address, 1)

    def test_emits_queue_created(self, setup):
        chain, token, guild, factory = setup
        address = factory.create(token.address, guild.address, DESTINATION, 30, 1)

        event = chain.events.last("QueueCreated")
        assert event.address == factory.address
        assert event.args == (address,)

    def test_created_queue_cannot_be_reinitialized(self, setup):
        chain, token, guild, factory = setup
        address = factory.create(token.address, guild.address, DESTINATION, 30, 1)
        with pytest.raises(AlreadyInitialized):
            factory.get_queue(address).init(token.address, guild.address, BIDDER, 0, 0)

    def test_create_default_uses_chain_lockup(self, setup):
        chain, token, guild, factory = setup
        address = factory.create_default(token.address, guild.address, DESTINATION)

        config = factory.get_queue(address).config
        assert config.lockup_duration == 3 * 24 * 60 * 60
        assert config.min_shares == 2

    def test_high_threshold_instance_rejects_member(self, setup):
        """A member with 2 shares is not a full member of a 100-share queue."""
        chain, token, guild, factory = setup
        queue = factory.get_queue(factory.create(token.address, guild.address, DESTINATION, 30, 100))
        token.set_balance(BIDDER, 100)
        token.approve(BIDDER, queue.address, 100)
        queue.submit_bid(BIDDER, 75, b"details")

        with pytest.raises(NotFullMember):
            queue.accept_bid(MEMBER, 0)

    def test_invalid_config_creates_nothing(self, setup):
        chain, token, guild, factory = setup
        with pytest.raises(ValueError):
            factory.create(token.address, guild.address, DESTINATION, -5, 1)
        assert factory.queues() == []


class TestIsolation:
    """Queues from one factory share nothing but the chain."""

    def test_bids_are_per_queue(self, setup):
        chain, token, guild, factory = setup
        a = factory.get_queue(factory.create(token.address, guild.address, DESTINATION, 0, 1))
        b = factory.get_queue(factory.create(token.address, guild.address, DESTINATION, 0, 1))

        token.set_balance(BIDDER, 100)
        token.approve(BIDDER, a.address, 40)
        token.approve(BIDDER, b.address, 60)

        assert a.submit_bid(BIDDER, 40, b"a") == 0
        assert b.submit_bid(BIDDER, 60, b"b") == 0

        a.accept_bid(MEMBER, 0)
        assert b.bids(0).is_active
        assert token.balance_of(a.address) == 0
        assert token.balance_of(b.address) == 60

    def test_stats(self, setup):
        chain, token, guild, factory = setup
        queue = factory.get_queue(factory.create(token.address, guild.address, DESTINATION, 0, 1))
        token.set_balance(BIDDER, 10)
        token.approve(BIDDER, queue.address, 10)
        queue.submit_bid(BIDDER, 10, b"")

        assert factory.stats() == {"queues": 1, "total_escrowed": 10}
        assert factory.queues() == [queue]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
