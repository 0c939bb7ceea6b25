from __future__ import annotations

import logging

import pytest

from proamm.core.chain import Chain

TOKEN = "0x" + "cc" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20


class Counter:
    def __init__(self) -> None:
        self.value = 0

    def snapshot(self) -> int:
        return self.value

    def restore(self, snapshot: int) -> None:
        self.value = snapshot


class TestTime:
    def test_advance(self):
        chain = Chain(timestamp=10)
        chain.advance_time(5)
        assert chain.timestamp == 15

    def test_time_cannot_go_backwards(self):
        chain = Chain(timestamp=10)
        with pytest.raises(ValueError):
            chain.set_timestamp(9)
        with pytest.raises(ValueError):
            chain.advance_time(-1)

    def test_uint32_bound(self):
        with pytest.raises(ValueError):
            Chain(timestamp=2**32)
        chain = Chain(timestamp=2**32 - 1)
        with pytest.raises(ValueError):
            chain.advance_time(1)


class TestAtomic:
    def test_commit(self):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        with chain.atomic():
            counter.value = 3
            chain.mint_token(TOKEN, ALICE, 10)
        assert counter.value == 3
        assert chain.balance_of(TOKEN, ALICE) == 10

    def test_rollback_restores_every_component(self, caplog):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        chain.mint_token(TOKEN, ALICE, 10)
        with caplog.at_level(logging.WARNING, logger="proamm.core.chain"):
            with pytest.raises(RuntimeError):
                with chain.atomic("demo"):
                    counter.value = 3
                    chain.transfer(TOKEN, ALICE, BOB, 4)
                    raise RuntimeError("boom")
        assert counter.value == 0
        assert chain.balance_of(TOKEN, ALICE) == 10
        assert chain.balance_of(TOKEN, BOB) == 0
        assert "rolled back demo" in caplog.text

    def test_nested_rollback_is_independent(self):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        with chain.atomic():
            counter.value = 1
            with pytest.raises(RuntimeError):
                with chain.atomic():
                    counter.value = 2
                    raise RuntimeError
            assert counter.value == 1
        assert counter.value == 1

    def test_register_is_idempotent(self):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        chain.register(counter)
        assert "components=2" in repr(chain)

    def test_rollback_drops_components_registered_inside(self):
        chain = Chain()
        with pytest.raises(RuntimeError):
            with chain.atomic():
                chain.register(Counter())
                raise RuntimeError
        assert "components=1" in repr(chain)

    def test_commit_keeps_components_registered_inside(self):
        chain = Chain()
        with chain.atomic():
            chain.register(Counter())
        assert "components=2" in repr(chain)


class TestSimulate:
    def test_changes_are_discarded(self, caplog):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        chain.mint_token(TOKEN, ALICE, 10)
        with caplog.at_level(logging.WARNING, logger="proamm.core.chain"):
            with chain.simulate("quote"):
                counter.value = 3
                chain.transfer(TOKEN, ALICE, BOB, 4)
                chain.register(Counter())
        assert counter.value == 0
        assert chain.balance_of(TOKEN, BOB) == 0
        assert "components=2" in repr(chain)
        assert caplog.text == ""

    def test_exception_still_propagates(self):
        chain = Chain()
        counter = Counter()
        chain.register(counter)
        with pytest.raises(RuntimeError):
            with chain.simulate():
                counter.value = 3
                raise RuntimeError
        assert counter.value == 0
