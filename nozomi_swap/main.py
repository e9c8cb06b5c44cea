"""
Main entry point for the Nozomi swap client.
"""
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import load_config, load_dotenv_file
from .errors import ConfigError
from .jupiter_client import JupiterClient
from .pipeline import SwapPipeline, SwapResult
from .solana_client import SolanaClient

logger = logging.getLogger(__name__)

LOG_FILE = 'nozomi_swap.log'


def setup_logging(level: str = 'INFO', log_file: Optional[str] = LOG_FILE):
    """Log to stdout and, if given, to a file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)


def set_log_level(level: str):
    """Apply the configured level once config is loaded."""
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def print_submitted(signature: str):
    print(f"Nozomi response: txid: {signature}", flush=True)


def print_result(result: SwapResult):
    if result.success:
        print(f"Confirmed in: {int(result.elapsed_seconds)} seconds", flush=True)
    else:
        print(f"Swap failed at step '{result.step}': {result.error}", file=sys.stderr, flush=True)


async def main(
    amount_lamports: Optional[int] = None,
    slippage_bps: Optional[int] = None,
    env_file: Optional[Path] = None
) -> int:
    """
    Run one swap through the Nozomi relay.

    Returns:
        Process exit code: 0 on confirmation, 1 on any failure
    """
    setup_logging()
    load_dotenv_file(env_file)

    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"Configuration error: {e.message}")
        return 1
    set_log_level(config.log_level)

    overrides = {}
    if amount_lamports is not None:
        if amount_lamports <= 0:
            logger.error(f"Configuration error: amount must be positive, got {amount_lamports} lamports")
            return 1
        overrides['amount_lamports'] = amount_lamports
    if slippage_bps is not None:
        if not 0 <= slippage_bps <= 10_000:
            logger.error(f"Configuration error: slippage must be 0..10000 bps, got {slippage_bps}")
            return 1
        overrides['slippage_bps'] = slippage_bps
    if overrides:
        config = dataclasses.replace(config, **overrides)

    logger.info(
        f"Starting swap: wallet={config.wallet.pubkey()} "
        f"amount={config.amount_lamports} slippage_bps={config.slippage_bps}"
    )

    jupiter = JupiterClient(config.jupiter_api_url, api_key=config.jupiter_api_key)
    ledger = SolanaClient(config.rpc_url)
    relay = SolanaClient(config.relay_url)

    try:
        pipeline = SwapPipeline(config, jupiter, ledger, relay, on_submitted=print_submitted)
        result = await pipeline.run()
    finally:
        try:
            await jupiter.close()
        finally:
            try:
                await ledger.close()
            finally:
                await relay.close()

    print_result(result)
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
