"""
rToken minting for reinvested fees.

Fees accumulate as reinvestment liquidity (`reinvest_l`). Between settlements
the growth ``reinvest_l - reinvest_l_last`` belongs partly to position
liquidity (`base_l`) and partly to existing rToken holders. Only the position
share is minted as new rTokens:

    lp_contribution = base_l * (reinvest_l - reinvest_l_last) / (base_l + reinvest_l)
    rmint           = r_total_supply * lp_contribution / reinvest_l_last

Both divisions round down.
"""

from __future__ import annotations

from .full_math import mul_div_floor


def calc_rmint_qty(reinvest_l: int, reinvest_l_last: int, base_l: int, r_total_supply: int) -> int:
    lp_contribution = mul_div_floor(base_l, reinvest_l - reinvest_l_last, base_l + reinvest_l)
    return mul_div_floor(r_total_supply, lp_contribution, reinvest_l_last)
