"""
Tests for the simulated chain host.
"""

import threading

import pytest

from gaq.core.chain import Chain, Contract
from gaq.core.config import DEV_CHAIN_ID
from gaq.crypto import ZERO_ADDRESS, contract_address


class TestClock:
    """Tests for block height and timestamp."""

    def test_defaults(self):
        chain = Chain(start_time=500)
        assert chain.chain_id == DEV_CHAIN_ID
        assert chain.block_number == 0
        assert chain.timestamp == 500

    def test_mine_advances_block_and_time(self):
        chain = Chain(start_time=500, block_time=12)
        assert chain.mine(2) == 2
        assert chain.timestamp == 524

    def test_increase_time(self):
        chain = Chain(start_time=500)
        chain.increase_time(60)
        chain.mine()
        assert chain.timestamp == 561

    def test_time_cannot_go_backwards(self):
        chain = Chain(start_time=500)
        with pytest.raises(ValueError):
            chain.increase_time(-1)
        with pytest.raises(ValueError):
            chain.set_timestamp(499)


class TestContracts:
    """Tests for the contract directory."""

    def test_deploy_assigns_derived_address(self):
        chain = Chain()
        contract = Contract(chain)
        address = chain.deploy(contract)

        assert address == contract_address(ZERO_ADDRESS, 0)
        assert chain.contract_at(address) is contract
        assert chain.has_contract(address)

    def test_next_address_predicts_deploy(self):
        chain = Chain()
        creator = b"\x01" * 20
        predicted = chain.next_address(creator)
        assert chain.deploy(Contract(chain), creator=creator) == predicted
        assert chain.next_address(creator) != predicted

    def test_preassigned_address_kept(self):
        chain = Chain()
        contract = Contract(chain, address=b"\x09" * 20)
        assert chain.deploy(contract) == b"\x09" * 20

    def test_duplicate_address_rejected(self):
        chain = Chain()
        chain.deploy(Contract(chain, address=b"\x09" * 20))
        with pytest.raises(ValueError):
            chain.deploy(Contract(chain, address=b"\x09" * 20))

    def test_unknown_address(self):
        with pytest.raises(LookupError):
            Chain().contract_at(b"\x09" * 20)

    def test_contracts_listing(self):
        chain = Chain()
        a, b = Contract(chain), Contract(chain)
        chain.deploy(a)
        chain.deploy(b)
        assert chain.contracts() == [a, b]


class TestExecution:
    """Tests for serialized execution."""

    def test_execute_is_reentrant(self):
        chain = Chain()
        with chain.execute():
            with chain.execute() as inner:
                assert inner is chain

    def test_execute_serializes_threads(self):
        chain = Chain()
        order = []
        entered = threading.Event()

        def worker():
            entered.set()
            with chain.execute():
                order.append("worker")

        with chain.execute():
            thread = threading.Thread(target=worker)
            thread.start()
            entered.wait()
            order.append("main")
        thread.join()

        assert order == ["main", "worker"]

    def test_emit_records_event(self):
        chain = Chain(start_time=10)
        contract = Contract(chain)
        chain.deploy(contract)
        event = contract._emit("BidCanceled", 3)

        assert chain.events.last() is event
        assert event.address == contract.address
        assert event.timestamp == 10

    def test_failed_frame_reverts_journaled_changes(self):
        chain = Chain()
        contract = Contract(chain)
        contract.counter = 1
        contract.table = {"a": 1}

        with pytest.raises(RuntimeError):
            with chain.execute():
                contract._journal_attr("counter")
                contract._journal_key(contract.table, "a")
                contract._journal_key(contract.table, "b")
                contract.counter = 2
                contract.table["a"] = 5
                contract.table["b"] = 6
                chain.deploy(contract)
                raise RuntimeError("boom")

        assert contract.counter == 1
        assert contract.table == {"a": 1}
        assert contract.address is None
        assert chain.contracts() == []
        assert chain.next_address() == contract_address(ZERO_ADDRESS, 0)

    def test_inner_failure_keeps_outer_changes(self):
        chain = Chain()
        contract = Contract(chain)
        contract.counter = 0

        with chain.execute():
            contract._journal_attr("counter")
            contract.counter = 1
            with pytest.raises(RuntimeError):
                with chain.execute():
                    contract._journal_attr("counter")
                    contract.counter = 2
                    raise RuntimeError("inner")

        assert contract.counter == 1

    def test_events_held_until_outermost_frame_completes(self):
        chain = Chain()
        contract = Contract(chain)
        chain.deploy(contract)

        with chain.execute():
            contract._emit("BidCanceled", 0)
            assert len(chain.events) == 0
        assert [e["bid_id"] for e in chain.events.filter("BidCanceled")] == [0]

    def test_failed_frame_drops_events(self):
        chain = Chain()
        contract = Contract(chain)
        chain.deploy(contract)

        with pytest.raises(RuntimeError):
            with chain.execute():
                contract._emit("BidCanceled", 0)
                raise RuntimeError("boom")

        assert len(chain.events) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
