#!/usr/bin/env python3
"""Asset price engine keeper.

Loads feeds, strategies and assets from a JSON file into a price engine,
then stores observations on a fixed heartbeat so moving averages stay
current.

Run with ``python -m assetprice.main --config assets.json``.
"""

import argparse
import asyncio
import logging
import os
import sys

from .src.Authority import RolesAuthority
from .src.config import ConfigError, apply_config, load_config
from .src.ContractUtility import ContractUtility
from .src.errors import PriceError
from .src.Keeper import Keeper
from .src.PriceModule import PriceModule
from .src.submodules import HttpJsonPriceFeed, get_available_submodules

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

ADMIN_ACTIONS = (
    "install_submodule",
    "upgrade_submodule",
    "add_asset",
    "remove_asset",
    "update_asset_price_feeds",
    "update_asset_price_strategy",
    "update_asset_moving_average",
)

KEEPER_ACTIONS = ("store_price", "store_observations")


def main() -> None:
    """Main entry point for the price keeper CLI."""
    parser = argparse.ArgumentParser(
        description="Asset price engine: aggregated prices with moving averages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Bundled submodules:
  {', '.join(get_available_submodules())}

Examples:
  # Run the heartbeat against a local node
  python -m assetprice.main --config assets.json --network localnet

  # Store once and exit
  python -m assetprice.main --config assets.json --once -v

Environment variables (CLI args take precedence):
  CONFIG, NETWORK, RPC_URL, DECIMALS, OBSERVATION_FREQUENCY, KEEPER_ID,
  HTTP_TIMEOUT
""",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to the JSON asset configuration",
        default=os.environ.get("CONFIG"),
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network name (mainnet, sepolia, localnet) or RPC URL",
        default=os.environ.get("NETWORK") or "localnet",
    )

    parser.add_argument(
        "--decimals",
        type=int,
        help="Decimals of every reported price (default: 18)",
        default=int(os.environ.get("DECIMALS") or "18"),
    )

    parser.add_argument(
        "--observation-frequency",
        dest="observation_frequency",
        type=int,
        help="Seconds between stored observations (default: 28800)",
        default=int(os.environ.get("OBSERVATION_FREQUENCY") or "28800"),
    )

    parser.add_argument(
        "--keeper",
        type=str,
        help="Caller identity used for storing observations (default: keeper)",
        default=os.environ.get("KEEPER_ID") or "keeper",
    )

    parser.add_argument(
        "--http-timeout",
        dest="http_timeout",
        type=float,
        help="Timeout for HTTP feed requests in seconds (default: 10.0)",
        default=float(os.environ.get("HTTP_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Store observations a single time and exit",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not args.config:
        parser.error("--config (or CONFIG) is required")

    if args.observation_frequency < 1:
        parser.error("--observation-frequency must be at least 1 second")

    if not 0 <= args.decimals <= 38:
        parser.error("--decimals must be between 0 and 38")

    try:
        config = load_config(args.config)
    except ConfigError as e:
        parser.error(str(e))

    # Log configuration
    logger.info("=" * 60)
    logger.info("Asset Price Engine - Keeper")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Config:            {args.config}")
    logger.info(f"Submodules:        {', '.join(config.submodules) or 'none'}")
    logger.info(f"Assets:            {len(config.assets)}")
    logger.info(f"Decimals:          {args.decimals}")
    logger.info(f"Obs. Frequency:    {args.observation_frequency}s")
    logger.info(f"Keeper:            {args.keeper}")
    logger.info("=" * 60)

    admin = "config"
    authority = RolesAuthority()
    authority.grant(admin, *ADMIN_ACTIONS)
    authority.grant(args.keeper, *KEEPER_ACTIONS)

    try:
        contract_utility = ContractUtility(args.network)
        price = PriceModule(
            authority,
            decimals=args.decimals,
            observation_frequency=args.observation_frequency,
            is_contract=contract_utility.has_code,
        )
        apply_config(
            price,
            config,
            caller=admin,
            w3=contract_utility.w3,
            clock=price.clock,
            http_timeout=args.http_timeout,
        )

        keeper = Keeper(price, args.keeper)
        asyncio.run(keeper.run(iterations=1 if args.once else None))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (ConfigError, PriceError) as e:
        logger.error(f"Configuration rejected: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        HttpJsonPriceFeed.close_shared_client()


if __name__ == "__main__":
    main()
