"""
Closed-form Black-Scholes valuation of European options.

    d1 = (ln(S/K) + (r + sigma^2/2) T) / (sigma sqrt(T))
    d2 = d1 - sigma sqrt(T)
    Call = S N(d1) - K e^(-rT) N(d2)
    Put  = K e^(-rT) N(-d2) - S N(-d1)

Also valid for American calls on non-dividend-paying stock (Merton, 1973),
not for American puts. Inherits the model's constant-volatility assumption.

At sigma == 0 the terminal price is deterministic and the formula reduces to
the discounted intrinsic value max(S - K e^(-rT), 0) (call) or
max(K e^(-rT) - S, 0) (put); this limit is returned directly instead of
evaluating d1/d2, which are infinite there.
"""

import math

from scipy.stats import norm

from src.core.models import OptionSpec, ValuationResult


def d1(spec: OptionSpec) -> float:
    """First standard normal argument. Requires volatility > 0."""
    vol_sqrt_t = spec.volatility * math.sqrt(spec.maturity)
    return (
        math.log(spec.underlying / spec.strike)
        + (spec.risk_free_rate + spec.volatility ** 2 / 2.0) * spec.maturity
    ) / vol_sqrt_t


def d2(spec: OptionSpec) -> float:
    """Second standard normal argument. Requires volatility > 0."""
    return d1(spec) - spec.volatility * math.sqrt(spec.maturity)


def itm_probability(spec: OptionSpec) -> float:
    """
    Risk-neutral probability that the option finishes in the money.

    N(d2) for a call, N(-d2) for a put. At zero volatility this is 1.0 or 0.0
    depending on whether the forward is in the money.
    """
    if spec.volatility == 0:
        forward_gap = spec.underlying - spec.strike * spec.discount_factor
        in_money = forward_gap > 0 if spec.is_call else forward_gap < 0
        return 1.0 if in_money else 0.0
    z = d2(spec)
    return float(norm.cdf(z if spec.is_call else -z))


def price(spec: OptionSpec) -> float:
    """Black-Scholes present value of the option."""
    discounted_strike = spec.strike * spec.discount_factor

    if spec.volatility == 0:
        if spec.is_call:
            return max(spec.underlying - discounted_strike, 0.0)
        return max(discounted_strike - spec.underlying, 0.0)

    a = d1(spec)
    b = a - spec.volatility * math.sqrt(spec.maturity)
    if spec.is_call:
        value = spec.underlying * norm.cdf(a) - discounted_strike * norm.cdf(b)
    else:
        value = discounted_strike * norm.cdf(-b) - spec.underlying * norm.cdf(-a)
    # Round-off can leave deep OTM values a hair below zero
    return max(float(value), 0.0)


class BlackScholesEngine:
    """Analytic engine: OptionSpec -> ValuationResult"""

    @property
    def name(self) -> str:
        return "BlackScholes"

    def value(self, spec: OptionSpec) -> ValuationResult:
        """
        Price a European option.

        Input validation happens when the OptionSpec is constructed, so this
        never fails for an existing spec.
        """
        return ValuationResult(theoretical_price=price(spec))
