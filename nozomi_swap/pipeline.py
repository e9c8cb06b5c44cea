"""
Quote -> swap instructions -> lookup tables -> assemble -> sign -> relay -> confirm.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .config import SwapConfig
from .confirmation import wait_for_confirmation
from .errors import SwapError
from .jupiter_client import JupiterClient, SwapTransactionConfig
from .solana_client import SolanaClient
from .transaction_builder import (
    build_tip_instruction,
    compile_message,
    order_instructions,
    sign_transaction,
)
from .utils import get_terminal_colors

logger = logging.getLogger(__name__)

colors = get_terminal_colors()


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a pipeline run. On failure, ``step`` names the step that failed."""
    success: bool
    step: str
    error: Optional[str] = None
    signature: Optional[str] = None
    elapsed_seconds: Optional[float] = None
    attempts: int = 0


class SwapPipeline:
    """Runs one swap through the Nozomi relay, strictly in order."""

    def __init__(
        self,
        config: SwapConfig,
        jupiter: JupiterClient,
        ledger: SolanaClient,
        relay: SolanaClient,
        swap_config: Optional[SwapTransactionConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_submitted: Optional[Callable[[str], None]] = None
    ):
        self.config = config
        self.jupiter = jupiter
        self.ledger = ledger
        self.relay = relay
        self.swap_config = swap_config or SwapTransactionConfig()
        self.sleep = sleep
        self.clock = clock
        self.on_submitted = on_submitted

    async def execute(self) -> SwapResult:
        """
        Run every step, raising the first SwapError.

        Returns:
            Successful SwapResult with signature, elapsed seconds and poll count
        """
        cfg = self.config
        payer = cfg.wallet.pubkey()

        quote = await self.jupiter.get_quote(
            input_mint=cfg.input_mint,
            output_mint=cfg.output_mint,
            amount=cfg.amount_lamports,
            slippage_bps=cfg.slippage_bps
        )
        logger.info(
            f"Quote: {colors['GREEN']}{quote.in_amount}{colors['RESET']} "
            f"{colors['CYAN']}{quote.input_mint[:8]}{colors['RESET']} -> "
            f"{colors['GREEN']}{quote.out_amount}{colors['RESET']} "
            f"{colors['CYAN']}{quote.output_mint[:8]}{colors['RESET']} "
            f"(impact {colors['YELLOW']}{quote.price_impact_pct:.4f}%{colors['RESET']})"
        )

        plan = await self.jupiter.get_swap_instructions(
            quote=quote,
            user_public_key=str(payer),
            config=self.swap_config
        )

        lookup_tables = await self.ledger.get_address_lookup_table_accounts(
            plan.address_lookup_table_addresses
        )
        logger.debug(f"{colors['DIM']}Resolved {len(lookup_tables)} ALT accounts{colors['RESET']}")

        tip_ix = build_tip_instruction(payer, cfg.tip_lamports, cfg.tip_account)
        instructions = order_instructions(plan, tip_ix)

        blockhash = await self.ledger.get_latest_blockhash()

        message = compile_message(payer, instructions, lookup_tables, blockhash.blockhash)
        tx = sign_transaction(message, cfg.wallet)
        logger.info(
            f"Transaction built: {colors['GREEN']}{len(instructions)}{colors['RESET']} instructions, "
            f"{colors['GREEN']}{len(lookup_tables)}{colors['RESET']} ALTs, "
            f"tip {colors['YELLOW']}{cfg.tip_lamports}{colors['RESET']} lamports"
        )

        start = self.clock()
        signature = await self.relay.send_transaction(tx)
        logger.info(f"Submitted via relay: {colors['CYAN']}{signature}{colors['RESET']}")
        if self.on_submitted is not None:
            self.on_submitted(signature)

        confirmation = await wait_for_confirmation(
            lambda: self.ledger.is_confirmed(signature),
            cfg.poll_policy,
            sleep=self.sleep,
            clock=self.clock,
            started_at=start
        )
        logger.info(
            f"{colors['GREEN']}Confirmed{colors['RESET']} {colors['CYAN']}{signature}{colors['RESET']} "
            f"after {confirmation.attempts} status checks"
        )

        return SwapResult(
            success=True,
            step="confirm",
            signature=signature,
            elapsed_seconds=confirmation.elapsed_seconds,
            attempts=confirmation.attempts
        )

    async def run(self) -> SwapResult:
        """Run the pipeline, converting the first SwapError into a failed SwapResult."""
        try:
            return await self.execute()
        except SwapError as e:
            logger.error(f"{colors['RED']}Swap failed at step '{e.step}'{colors['RESET']}: {e.message}")
            return SwapResult(success=False, step=e.step, error=e.message)
