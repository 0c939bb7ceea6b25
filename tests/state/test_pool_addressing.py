from __future__ import annotations

import pytest

from proamm.state.pools import PoolData, compute_pool_address, sort_tokens

FACTORY = "0x" + "fa" * 20
T0 = "0x" + "0a" * 20
T1 = "0x" + "0b" * 20


def test_sort_tokens():
    assert sort_tokens(T1, T0) == (T0, T1)
    assert sort_tokens(T0, T1) == (T0, T1)


class TestComputePoolAddress:
    def test_deterministic(self):
        address = compute_pool_address(FACTORY, T0, T1, 40)
        assert address == compute_pool_address(FACTORY, T0, T1, 40)
        assert address.startswith("0x") and len(address) == 42

    def test_distinct_per_parameter(self):
        base = compute_pool_address(FACTORY, T0, T1, 40)
        assert base != compute_pool_address(FACTORY, T0, T1, 300)
        assert base != compute_pool_address("0x" + "fb" * 20, T0, T1, 40)

    def test_requires_canonical_order(self):
        with pytest.raises(ValueError):
            compute_pool_address(FACTORY, T1, T0, 40)

    @pytest.mark.parametrize("fee", [0, 100_000])
    def test_fee_range(self, fee):
        with pytest.raises(ValueError):
            compute_pool_address(FACTORY, T0, T1, fee)


class TestPoolData:
    def test_default_is_uninitialized_and_locked(self):
        data = PoolData()
        assert not data.initialized
        assert data.locked

    def test_rejects_negative_fields(self):
        with pytest.raises(ValueError):
            PoolData(base_l=-1)
