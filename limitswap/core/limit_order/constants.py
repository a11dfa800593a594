"""Chain tables and fixed-point scales used by limit-order derivation."""

from __future__ import annotations

from typing import Dict

# Canonical scale for rates: 1.0 == 10**18
RATE_DECIMALS = 18
WAD = 10 ** RATE_DECIMALS

# Rate deltas are shown as percentages of WAD, i.e. 16 decimals
DELTA_DISPLAY_DECIMALS = 16

MAX_UINT256 = 2 ** 256 - 1

# The advice amount is padded by 10% (1.1 at 18 decimals)
ADVICE_MARGIN = 11 * 10 ** 17

GWEI_DECIMALS = 9

# Sentinel the limit-order contracts use for the native asset
ETH_ADDRESS = '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'

# Relay quotes the native asset under the zero address
NATIVE_PLACEHOLDER = '0x0000000000000000000000000000000000000000'

NATIVE_TOKEN_TICKER: Dict[int, str] = {
    1: 'ETH',
    3: 'ETH',
    137: 'MATIC',
}

NATIVE_WRAPPED_TOKEN_ADDRESS: Dict[int, str] = {
    1: '0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2',
    3: '0xc778417e063141139fce010982780140aa0cd5ab',
    137: '0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270',
}

LIMIT_ORDER_MODULE_ADDRESSES: Dict[int, str] = {
    1: '0x037fc8e71445910e1e0bbb2a0896d5e9a7485318',
}

# Decimals shown for balances, amounts and rates
DISPLAY_DECIMALS = 4
SIGNIFICANT_DIGITS = 6
