#!/usr/bin/env python3
"""
Simple launcher script for the Nozomi swap client.
"""
import argparse
import sys
from nozomi_swap.config import sol_to_lamports
from nozomi_swap.main import main
import asyncio

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Jupiter swap submitted through Nozomi')
    parser.add_argument(
        '--amount-sol',
        type=float,
        default=None,
        help='Input amount in SOL (default: SWAP_AMOUNT_LAMPORTS or 0.1 SOL)'
    )
    parser.add_argument(
        '--slippage-bps',
        type=int,
        default=None,
        help='Slippage tolerance in basis points (default: SLIPPAGE_BPS or 50)'
    )

    args = parser.parse_args()
    amount = sol_to_lamports(args.amount_sol) if args.amount_sol is not None else None

    try:
        sys.exit(asyncio.run(main(amount_lamports=amount, slippage_bps=args.slippage_bps)))
    except KeyboardInterrupt:
        print("\nStopped by user")
        sys.exit(0)
