"""
Kelly sizing of an option position. EXPERIMENTAL.

If the Black-Scholes value of an option differs from its market price, the
Kelly criterion gives the bankroll fraction that maximises expected log
growth. A continuous option payoff has no closed-form Kelly solution, so this
module uses a binary-outcome APPROXIMATION; it is not a rigorous
continuous-payoff Kelly solution:

    p    = risk-neutral probability of finishing in the money
           (N(d2) for a call, N(-d2) for a put)
    win  : with probability p the option pays its conditional expected
           payoff, theoretical / p
    lose : with probability 1 - p the whole premium (market price) is lost
    b    = (theoretical / p - market) / market          net odds on a win
    f*   = (p b - (1 - p)) / b                          classic Kelly

With theoretical == market, p b = 1 - p and f* is 0 (returned exactly, not
through the round-off of the formula). A positive edge
gives a positive fraction, a negative edge a negative one (the option is
overpriced; the magnitude is how strongly to stay away or lean short).

Degenerate cases:
- p == 0 or b <= 0: even a win cannot recoup the premium, f* = -1.0
- f* is clipped to [-1, 1]; it is a fraction of the bankroll

edge = (theoretical - market) / market is reported alongside.
"""

import logging
from dataclasses import dataclass, field

from src.core.errors import InvalidParameter
from src.core.models import KellyResult, OptionSpec
from src.options.black_scholes import BlackScholesEngine, itm_probability

logger = logging.getLogger(__name__)


@dataclass
class KellySizer:
    """Binary-approximation Kelly sizer: OptionSpec with market price -> KellyResult"""
    pricer: BlackScholesEngine = field(default_factory=BlackScholesEngine)
    max_fraction: float = 1.0

    def __post_init__(self):
        if not 0 < self.max_fraction <= 1:
            raise InvalidParameter(f"max_fraction must be in (0, 1], got {self.max_fraction}")

    def size(self, spec: OptionSpec) -> KellyResult:
        """
        Compute the Kelly fraction for spec at its market price.

        Raises:
            InvalidParameter: If market_price is missing, zero or negative
        """
        market = spec.market_price
        if market is None:
            raise InvalidParameter("market_price is required for Kelly sizing")
        if market <= 0:
            raise InvalidParameter(f"market_price must be > 0, got {market}")

        theoretical = self.pricer.value(spec).theoretical_price
        edge = (theoretical - market) / market
        p = itm_probability(spec)

        if theoretical == market:
            odds = 1.0 / p - 1.0 if p > 0 else 0.0
            fraction = 0.0
        elif p == 0:
            odds = -1.0
            fraction = -self.max_fraction
        else:
            odds = (theoretical / p - market) / market
            if odds <= 0:
                fraction = -self.max_fraction
            else:
                fraction = (p * odds - (1.0 - p)) / odds
                fraction = min(max(fraction, -self.max_fraction), self.max_fraction)

        logger.info(
            f"Kelly {spec.form.value}: theoretical {theoretical:.6f} vs market {market:.6f}, "
            f"edge {edge:+.4f}, p {p:.4f}, fraction {fraction:+.4f}"
        )
        return KellyResult(optimal_fraction=fraction, edge=edge, win_probability=p, odds=odds)
