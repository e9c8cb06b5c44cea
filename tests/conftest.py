"""
Pytest configuration and fixtures for Nozomi swap client tests.
"""
import base64

import pytest
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from nozomi_swap.config import SwapConfig
from nozomi_swap.confirmation import PollPolicy
from nozomi_swap.jupiter_client import (
    JupiterQuote,
    JupiterSwapInstructionsResponse,
    SwapAccountMeta,
    SwapInstruction,
)


def make_instruction(tag: int, payer: Pubkey = None, extra_accounts: int = 1) -> SwapInstruction:
    """Build a SwapInstruction whose data is the single byte ``tag``."""
    accounts = []
    if payer is not None:
        accounts.append(SwapAccountMeta(pubkey=str(payer), is_signer=True, is_writable=True))
    for _ in range(extra_accounts):
        accounts.append(SwapAccountMeta(pubkey=str(Pubkey.new_unique()), is_signer=False, is_writable=True))
    return SwapInstruction(
        program_id=str(Pubkey.new_unique()),
        accounts=accounts,
        data=base64.b64encode(bytes([tag])).decode()
    )


@pytest.fixture
def keypair():
    """Create a keypair for testing."""
    return Keypair()


@pytest.fixture
def sol_mint():
    """SOL mint address."""
    return "So11111111111111111111111111111111111111112"


@pytest.fixture
def usdc_mint():
    """USDC mint address."""
    return "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def quote_payload(sol_mint, usdc_mint):
    """Raw /quote response body."""
    return {
        "inputMint": sol_mint,
        "inAmount": "100000000",
        "outputMint": usdc_mint,
        "outAmount": "15000000",
        "otherAmountThreshold": "14925000",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.0001",
        "routePlan": [{"swapInfo": {"ammKey": "amm"}, "percent": 100}],
        "contextSlot": 300000000
    }


@pytest.fixture
def quote(quote_payload):
    return JupiterQuote.from_api(quote_payload)


@pytest.fixture
def swap_config(keypair):
    """SwapConfig with a bounded, zero-interval poll policy."""
    return SwapConfig(
        nozomi_uuid="test-uuid",
        wallet=keypair,
        poll_policy=PollPolicy(interval=0.0, max_attempts=10)
    )


@pytest.fixture
def full_plan(keypair):
    """Swap plan with every optional instruction group populated."""
    payer = keypair.pubkey()
    return JupiterSwapInstructionsResponse(
        token_ledger_instruction=make_instruction(1, payer),
        compute_budget_instructions=[make_instruction(2), make_instruction(3)],
        setup_instructions=[make_instruction(4, payer)],
        swap_instruction=make_instruction(5, payer, extra_accounts=3),
        other_instructions=[make_instruction(7)],
        cleanup_instruction=make_instruction(8, payer),
        address_lookup_table_addresses=[]
    )


@pytest.fixture
def minimal_plan(keypair):
    """Swap plan with only the swap instruction."""
    return JupiterSwapInstructionsResponse(
        swap_instruction=make_instruction(5, keypair.pubkey())
    )


@pytest.fixture
def lookup_table():
    return AddressLookupTableAccount(
        Pubkey.new_unique(),
        [Pubkey.new_unique() for _ in range(3)]
    )

