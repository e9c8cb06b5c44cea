"""
Assemble, compile and sign the swap transaction.
"""
import base64
import logging
from typing import List, Sequence

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction, AccountMeta
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from .config import NOZOMI_TIP_ADDRESS
from .errors import SigningError, TransactionBuildError
from .jupiter_client import JupiterSwapInstructionsResponse, SwapInstruction

logger = logging.getLogger(__name__)

# Solana packet size limit for a serialized transaction
MAX_TRANSACTION_SIZE = 1232


def to_solana_instruction(swap_instr: SwapInstruction) -> Instruction:
    """
    Convert SwapInstruction from Jupiter API to Solana Instruction.

    Raises:
        TransactionBuildError: If the program id, an account or the data cannot be decoded
    """
    try:
        program_id = Pubkey.from_string(swap_instr.program_id)
        accounts = [
            AccountMeta(
                pubkey=Pubkey.from_string(meta.pubkey),
                is_signer=meta.is_signer,
                is_writable=meta.is_writable
            )
            for meta in swap_instr.accounts
        ]
        data = base64.b64decode(swap_instr.data, validate=True)
    except Exception as e:
        raise TransactionBuildError(
            f"Cannot decode instruction for program {swap_instr.program_id}: {e}"
        ) from e

    return Instruction(program_id=program_id, accounts=accounts, data=data)


def build_tip_instruction(
    payer: Pubkey,
    tip_lamports: int,
    tip_account: Pubkey = NOZOMI_TIP_ADDRESS
) -> Instruction:
    """System Program transfer of the fixed relay tip."""
    return transfer(TransferParams(
        from_pubkey=payer,
        to_pubkey=tip_account,
        lamports=tip_lamports
    ))


def order_instructions(
    plan: JupiterSwapInstructionsResponse,
    tip_instruction: Instruction
) -> List[Instruction]:
    """
    Flatten the swap plan into the final instruction sequence:

    token ledger (optional), compute budget, setup, swap, relay tip,
    other instructions, cleanup (optional).
    """
    instructions: List[Instruction] = []
    if plan.token_ledger_instruction is not None:
        instructions.append(to_solana_instruction(plan.token_ledger_instruction))
    instructions.extend(to_solana_instruction(i) for i in plan.compute_budget_instructions)
    instructions.extend(to_solana_instruction(i) for i in plan.setup_instructions)
    instructions.append(to_solana_instruction(plan.swap_instruction))
    instructions.append(tip_instruction)
    instructions.extend(to_solana_instruction(i) for i in plan.other_instructions)
    if plan.cleanup_instruction is not None:
        instructions.append(to_solana_instruction(plan.cleanup_instruction))
    return instructions


def compile_message(
    payer: Pubkey,
    instructions: Sequence[Instruction],
    lookup_tables: Sequence[AddressLookupTableAccount],
    blockhash: Hash
) -> MessageV0:
    """
    Compile instructions into a v0 message using the resolved lookup tables.

    Raises:
        TransactionBuildError: If compilation fails
    """
    try:
        return MessageV0.try_compile(
            payer=payer,
            instructions=list(instructions),
            address_lookup_table_accounts=list(lookup_tables),
            recent_blockhash=blockhash
        )
    except Exception as e:
        logger.error(
            f"Failed to compile v0 message: {e} "
            f"({len(instructions)} instructions, {len(lookup_tables)} ALTs)"
        )
        raise TransactionBuildError(f"Failed to compile message: {e}") from e


def sign_transaction(message: MessageV0, keypair: Keypair) -> VersionedTransaction:
    """
    Sign the compiled message with exactly one keypair.

    Raises:
        SigningError: If the keypair does not match the message's required signer
        TransactionBuildError: If the signed transaction exceeds the packet size limit
    """
    try:
        tx = VersionedTransaction(message, [keypair])
    except Exception as e:
        raise SigningError(f"Failed to sign transaction: {e}") from e

    size = len(bytes(tx))
    if size > MAX_TRANSACTION_SIZE:
        raise TransactionBuildError(
            f"Transaction too large: {size} bytes (max {MAX_TRANSACTION_SIZE})"
        )
    logger.debug(f"Signed v0 transaction: {size}/{MAX_TRANSACTION_SIZE} bytes")
    return tx
