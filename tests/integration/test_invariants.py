"""
Randomized operation sequences against a single queue.

After every step, successful or rejected:
- queue token balance == sum of active bid amounts
- token supply is conserved
- terminal bids hold nothing and never change status again
- next_bid_id == number of bids ever created
"""

import random

import pytest

from gaq.core.chain import Chain
from gaq.core.errors import QueueError
from gaq.core.membership import MembershipRegistry
from gaq.core.queue import BidEscrowQueue, BidStatus
from gaq.core.token import ERC20Token

LOCKUP = 50
BIDDERS = [bytes([i]) * 20 for i in range(1, 5)]
MEMBER = b"\x20" * 20
OUTSIDER = b"\x21" * 20
DESTINATION = b"\x30" * 20


def build():
    chain = Chain(start_time=0)
    token = ERC20Token(chain)
    chain.deploy(token)
    guild = MembershipRegistry(chain)
    chain.deploy(guild)
    guild.add_member(MEMBER, shares=2)

    queue = BidEscrowQueue(chain)
    queue.init(token.address, guild.address, DESTINATION, LOCKUP, 2)
    for bidder in BIDDERS:
        token.mint(bidder, 10_000)
        token.approve(bidder, queue.address, 8_000)
    return chain, token, queue


def random_step(rng, chain, queue):
    """Run one random operation; QueueErrors are expected outcomes."""
    op = rng.choice(["submit", "increase", "withdraw", "cancel", "accept", "wait"])
    bidder = rng.choice(BIDDERS)
    # Occasionally aim past the last id
    bid_id = rng.randrange(queue.next_bid_id + 2)
    amount = rng.randrange(0, 400)

    try:
        if op == "submit":
            queue.submit_bid(bidder, amount, b"d")
        elif op == "increase":
            queue.increase_bid(bidder, amount, bid_id)
        elif op == "withdraw":
            queue.withdraw_bid(bidder, amount, bid_id)
        elif op == "cancel":
            queue.cancel_bid(bidder, bid_id)
        elif op == "accept":
            queue.accept_bid(rng.choice([MEMBER, OUTSIDER]), bid_id)
        else:
            chain.increase_time(rng.randrange(1, LOCKUP))
            chain.mine()
    except QueueError:
        pass


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
def test_escrow_invariants(seed):
    rng = random.Random(seed)
    chain, token, queue = build()
    supply = token.total_supply
    closed = {}
    created = 0

    for _ in range(400):
        before = queue.next_bid_id
        random_step(rng, chain, queue)
        created += queue.next_bid_id - before

        bids = queue.all_bids()
        assert token.balance_of(queue.address) == sum(b.amount for b in bids if b.is_active)
        assert token.total_supply == supply
        assert sum(token.balances.values()) == supply
        assert queue.next_bid_id == created == len(bids)

        for bid in bids:
            assert bid.amount >= 0
            if bid.bid_id in closed:
                assert bid.status is closed[bid.bid_id]
            if bid.status.is_terminal:
                assert bid.amount == 0
                closed.setdefault(bid.bid_id, bid.status)

    accepted = chain.events.filter("BidAccepted", queue.address)
    assert len(accepted) == sum(1 for s in closed.values() if s is BidStatus.ACCEPTED)
    all_ids = set(range(queue.next_bid_id))
    assert token.balance_of(DESTINATION) == _sum_accepted(chain, all_ids)


@pytest.mark.parametrize("seed", [3, 99])
def test_submitter_balances_reconcile(seed):
    """Each bidder's balance equals mint minus what it still has escrowed or paid out."""
    rng = random.Random(seed)
    chain, token, queue = build()

    for _ in range(300):
        random_step(rng, chain, queue)

    for bidder in BIDDERS:
        escrowed = sum(b.amount for b in queue.all_bids() if b.submitter == bidder and b.is_active)
        pulled = sum(e["amount"] for e in chain.events.filter("NewBid") if e["submitter"] == bidder)
        bidder_ids = {e["bid_id"] for e in chain.events.filter("NewBid") if e["submitter"] == bidder}
        increased = _sum_increases(chain, bidder_ids)
        paid_out = _sum_accepted(chain, bidder_ids)

        assert token.balance_of(bidder) == 10_000 - escrowed - paid_out
        assert pulled + increased >= escrowed + paid_out


def _sum_increases(chain, bid_ids):
    """Deltas of BidIncreased events for the given bids."""
    total = 0
    amounts = {}
    for event in chain.events.events:
        bid_id = event.fields.get("bid_id")
        if bid_id not in bid_ids:
            continue
        if event.name == "NewBid":
            amounts[bid_id] = event["amount"]
        elif event.name == "BidIncreased":
            total += event["new_amount"] - amounts[bid_id]
            amounts[bid_id] = event["new_amount"]
        elif event.name == "BidWithdrawn":
            amounts[bid_id] = event["new_amount"]
    return total


def _sum_accepted(chain, bid_ids):
    """Amounts settled to the destination for the given bids."""
    total = 0
    amounts = {}
    for event in chain.events.events:
        bid_id = event.fields.get("bid_id")
        if bid_id not in bid_ids:
            continue
        if event.name == "NewBid":
            amounts[bid_id] = event["amount"]
        elif event.name in ("BidIncreased", "BidWithdrawn"):
            amounts[bid_id] = event["new_amount"]
        elif event.name == "BidAccepted":
            total += amounts[bid_id]
    return total


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
