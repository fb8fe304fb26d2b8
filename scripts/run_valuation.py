"""
Run a valuation from a JSON request file.

Sub-commands mirror the four operations:
    returns  - portfolio return series      (request: {"portfolio": [...]})
    bs       - Black-Scholes option value   (request: option object)
    kelly    - experimental Kelly fraction  (request: option object with market_price)
    mc       - Monte Carlo option value     (request: option object)

Usage:
    python scripts/run_valuation.py returns requests/portfolio.json --config configs/local.json
    python scripts/run_valuation.py bs requests/option.json
    python scripts/run_valuation.py mc requests/option.json --paths 1000000 --seed 7
    python scripts/run_valuation.py kelly requests/option.json --verbose

The result (or {"error": ...}) is printed as JSON. Exit code is 0 on
success, 1 on a bad request, 2 on a data/provider failure.
"""

import sys
import argparse
import json
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.config import ModusConfig
from src.core.errors import FetchError, InvalidParameter, InvalidPathCount, ModusError
from src.core.parsing import option_from_dict, portfolio_from_dict, result_to_dict
from src import operations

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Portfolio returns and option valuation")
    parser.add_argument('command', choices=['returns', 'bs', 'kelly', 'mc'], help="Operation to run")
    parser.add_argument('request', help="Path to JSON request file")
    parser.add_argument('--config', help="Path to JSON config file (defaults apply if omitted)")
    parser.add_argument('--paths', type=int, help="Monte Carlo path count (overrides config)")
    parser.add_argument('--seed', type=int, help="Monte Carlo seed for reproducible output")
    parser.add_argument('--verbose', '-v', action='store_true', help="DEBUG logging")
    return parser.parse_args(argv)


def run(args, config: ModusConfig):
    """Dispatch one request and return the result object"""
    with open(args.request) as f:
        request = json.load(f)

    if args.command == 'returns':
        portfolio = portfolio_from_dict(request)
        return operations.compute_portfolio_returns(
            portfolio,
            fetcher=config.create_price_fetcher(),
            aggregator=config.create_aggregator()
        )

    spec = option_from_dict(request)
    if args.command == 'bs':
        return operations.compute_analytic_value(spec)
    if args.command == 'kelly':
        return operations.compute_kelly_sizing(spec)
    return operations.compute_monte_carlo_value(
        spec,
        path_count=args.paths,
        seed=args.seed,
        engine=config.create_monte_carlo_engine()
    )


def main(argv=None) -> int:
    args = parse_args(argv)

    config = ModusConfig.from_json(args.config) if args.config else ModusConfig()
    if args.verbose:
        config.logging['level'] = 'DEBUG'
    config.setup_logging()

    try:
        result = run(args, config)
    except (InvalidParameter, InvalidPathCount) as exc:
        logger.error(f"Bad request: {exc}")
        print(json.dumps({'error': str(exc)}, indent=2))
        return 1
    except FetchError as exc:
        logger.error(f"Price source failed: {exc}")
        print(json.dumps({'error': str(exc)}, indent=2))
        return 2
    except ModusError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        print(json.dumps({'error': str(exc)}, indent=2))
        return 2

    print(json.dumps(result_to_dict(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
