"""
Solana RPC client for lookup tables, blockhashes, sending and confirmation.

The same class backs both the ledger endpoint and the Nozomi relay, which
speaks the standard sendTransaction JSON-RPC method.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from solders.address_lookup_table_account import AddressLookupTableAccount, AddressLookupTable
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionConfirmationStatus
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.types import TxOpts

from .errors import ConfirmationError, LookupTableError, RpcError, SubmissionError

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


@dataclass(frozen=True)
class BlockhashInfo:
    blockhash: Hash
    last_valid_block_height: int


def _redact_url(url: str) -> str:
    """Strip query string (may hold an access token) for logging."""
    return url.split('?', 1)[0]


def _account_data_bytes(raw: Any) -> bytes:
    """
    Normalize account data to bytes.

    solana-py may return data as bytes, a base64 string, or a list
    ["<base64>", "<encoding>"] depending on version and encoding.
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return base64.b64decode(raw)
    if isinstance(raw, list) and raw and isinstance(raw[0], str):
        return base64.b64decode(raw[0])
    raise TypeError(f"Unexpected account data type: {type(raw).__name__}")


class SolanaClient:
    """Client for Solana RPC operations."""

    def __init__(self, rpc_url: str, commitment: Commitment = Confirmed):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.client = AsyncClient(rpc_url, commitment=commitment)

    async def get_address_lookup_table_accounts(
        self,
        addresses: List[str]
    ) -> List[AddressLookupTableAccount]:
        """
        Resolve Address Lookup Table (ALT) accounts in one batched request.

        Args:
            addresses: List of ALT addresses (base58 strings)

        Returns:
            List of AddressLookupTableAccount objects, in input order

        Raises:
            LookupTableError: If any ALT account cannot be fetched or decoded
        """
        if not addresses:
            return []

        try:
            pubkeys = [Pubkey.from_string(a) for a in addresses]
        except Exception as e:
            raise LookupTableError(f"Invalid ALT address in {addresses}: {e}") from e

        try:
            resp = await self.client.get_multiple_accounts(
                pubkeys,
                commitment=self.commitment,
                encoding="base64"
            )
        except Exception as e:
            logger.error(f"getMultipleAccounts failed for {len(pubkeys)} ALT accounts: {e}")
            raise LookupTableError(f"Cannot fetch ALT accounts: {e}") from e

        accounts = list(resp.value or [])
        if len(accounts) != len(pubkeys):
            raise LookupTableError(
                f"RPC returned {len(accounts)} accounts for {len(pubkeys)} ALT addresses"
            )

        alt_accounts = []
        for pubkey, account in zip(pubkeys, accounts):
            if account is None:
                logger.error(f"ALT account {pubkey} not found")
                raise LookupTableError(f"ALT account {pubkey} not found")
            try:
                table = AddressLookupTable.deserialize(_account_data_bytes(account.data))
                alt_account = AddressLookupTableAccount(pubkey, table.addresses)
            except Exception as e:
                logger.error(f"Failed to decode ALT account {pubkey}: {e}")
                raise LookupTableError(f"Cannot decode ALT account {pubkey}: {e}") from e

            alt_accounts.append(alt_account)
            logger.debug(f"Loaded ALT account: {pubkey} with {len(table.addresses)} addresses")

        return alt_accounts

    async def get_latest_blockhash(self) -> BlockhashInfo:
        """
        Get latest blockhash for transaction building.

        Raises:
            RpcError: If the request fails or returns no blockhash
        """
        try:
            result = await self.client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            logger.error(f"Error getting latest blockhash: {e}")
            raise RpcError(f"Failed to get blockhash: {e}") from e

        if not result.value:
            raise RpcError("Failed to get blockhash: empty response")
        return BlockhashInfo(
            blockhash=result.value.blockhash,
            last_valid_block_height=result.value.last_valid_block_height
        )

    async def send_transaction(
        self,
        tx: VersionedTransaction,
        skip_preflight: bool = True,
        max_retries: Optional[int] = 2
    ) -> str:
        """
        Send a signed VersionedTransaction once.

        Args:
            tx: VersionedTransaction object (already signed)
            skip_preflight: Skip preflight simulation on the receiving node
            max_retries: Rebroadcast attempts performed by the receiving node

        Returns:
            Transaction signature (base58 string)

        Raises:
            SubmissionError: On transport failure or if no signature is returned
        """
        opts = TxOpts(skip_preflight=skip_preflight, max_retries=max_retries)
        try:
            result = await self.client.send_raw_transaction(bytes(tx), opts=opts)
        except Exception as e:
            logger.error(f"Error sending transaction via {_redact_url(self.rpc_url)}: {e}")
            raise SubmissionError(f"Failed to send transaction: {e}") from e

        if not result.value:
            raise SubmissionError("Failed to send transaction: no signature returned")
        sig = str(result.value)
        logger.debug(f"Transaction sent via {_redact_url(self.rpc_url)}: {sig}")
        return sig

    async def is_confirmed(self, signature: str) -> bool:
        """
        Check once whether a transaction has reached confirmed commitment.

        Returns:
            True if confirmed or finalized, False if unknown or only processed

        Raises:
            ConfirmationError: If the transaction landed with an error
            Exception: Transport errors propagate to the caller
        """
        resp = await self.client.get_signature_statuses([Signature.from_string(signature)])
        status = resp.value[0] if resp.value else None
        if status is None:
            return False
        if status.err is not None:
            logger.error(f"Transaction {signature} failed: {status.err}")
            raise ConfirmationError(f"Transaction {signature} failed: {status.err}")
        return status.confirmation_status in CONFIRMED_STATUSES

    async def close(self):
        """Close RPC client."""
        await self.client.close()
