"""
Jupiter API Client for quotes and swap instructions.
"""
import httpx
import time
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass, field
import logging

from .config import DEFAULT_JUPITER_API_URL
from .errors import QuoteError, SwapInstructionsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JupiterQuote:
    """Quote response from Jupiter API."""
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    slippage_bps: int
    price_impact_pct: float
    route_plan: List[Dict[str, Any]]
    context_slot: Optional[int] = None
    time_taken: Optional[float] = None
    # Response body exactly as returned by /quote, posted back unmodified
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any], time_taken: Optional[float] = None) -> "JupiterQuote":
        return cls(
            input_mint=data["inputMint"],
            output_mint=data["outputMint"],
            in_amount=int(data["inAmount"]),
            out_amount=int(data["outAmount"]),
            slippage_bps=int(data.get("slippageBps", 0)),
            price_impact_pct=float(data.get("priceImpactPct") or 0),
            route_plan=data.get("routePlan", []),
            context_slot=data.get("contextSlot"),
            time_taken=time_taken,
            raw=data
        )


@dataclass(frozen=True)
class SwapAccountMeta:
    """Account metadata for swap instruction."""
    pubkey: str
    is_signer: bool
    is_writable: bool


@dataclass(frozen=True)
class SwapInstruction:
    """Single instruction descriptor from Jupiter API."""
    program_id: str
    accounts: List[SwapAccountMeta]
    data: str


@dataclass(frozen=True)
class JupiterSwapInstructionsResponse:
    """Swap instructions response from Jupiter API."""
    swap_instruction: SwapInstruction
    token_ledger_instruction: Optional[SwapInstruction] = None
    compute_budget_instructions: List[SwapInstruction] = field(default_factory=list)
    setup_instructions: List[SwapInstruction] = field(default_factory=list)
    cleanup_instruction: Optional[SwapInstruction] = None
    other_instructions: List[SwapInstruction] = field(default_factory=list)
    address_lookup_table_addresses: List[str] = field(default_factory=list)
    prioritization_fee_lamports: Optional[int] = None


@dataclass(frozen=True)
class SwapTransactionConfig:
    """Transaction-shaping options sent with the swap-instructions request."""
    wrap_and_unwrap_sol: bool = True
    dynamic_compute_unit_limit: bool = True
    use_shared_accounts: Optional[bool] = None
    prioritization_fee_lamports: Optional[Union[int, str]] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "wrapAndUnwrapSol": self.wrap_and_unwrap_sol,
            "dynamicComputeUnitLimit": self.dynamic_compute_unit_limit
        }
        if self.use_shared_accounts is not None:
            payload["useSharedAccounts"] = self.use_shared_accounts
        if self.prioritization_fee_lamports is not None:
            payload["prioritizationFeeLamports"] = self.prioritization_fee_lamports
        return payload


class JupiterClient:
    """Client for the Jupiter swap API. Each call is made once; failures raise."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0
    ):
        """
        Initialize Jupiter API client.

        Args:
            api_url: API base URL, e.g. https://quote-api.jup.ag/v6
            api_key: Jupiter API key, sent in the x-api-key header if provided
            timeout: Request timeout in seconds
        """
        self.api_url = (api_url or DEFAULT_JUPITER_API_URL).rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

        headers = {}
        if api_key:
            # Jupiter API expects API key in x-api-key header, not Authorization
            headers["x-api-key"] = api_key

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50,
        restrict_intermediate_tokens: bool = True
    ) -> JupiterQuote:
        """
        Get a quote for swapping tokens.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest unit (lamports for SOL)
            slippage_bps: Slippage in basis points (1 bps = 0.01%)
            restrict_intermediate_tokens: Route only through stable, liquid intermediate tokens

        Returns:
            JupiterQuote

        Raises:
            QuoteError: On transport failure, error status or malformed response
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
            "restrictIntermediateTokens": str(restrict_intermediate_tokens).lower()
        }
        url = f"{self.api_url}/quote"
        start_time = time.time()

        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Jupiter quote failed: {e.response.status_code} - {e.response.text}")
            raise QuoteError(f"Failed to get quote: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Jupiter quote request error: {e}")
            raise QuoteError(f"Failed to get quote: {e}") from e
        except ValueError as e:
            raise QuoteError(f"Failed to get quote: invalid JSON ({e})") from e

        if not isinstance(data, dict) or "error" in data:
            error = data.get("error") if isinstance(data, dict) else data
            raise QuoteError(f"Failed to get quote: {error}")

        try:
            quote = JupiterQuote.from_api(data, time_taken=time.time() - start_time)
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteError(f"Failed to get quote: malformed response ({e})") from e

        logger.debug(
            f"Quote: {input_mint[:8]}... -> {output_mint[:8]}... "
            f"in={quote.in_amount} out={quote.out_amount} "
            f"impact={quote.price_impact_pct:.4f}%"
        )
        return quote

    def _parse_accounts(self, accounts_data: List[Any]) -> List[SwapAccountMeta]:
        """
        Parse accounts from Jupiter API response.

        Only the object format {"pubkey", "isSigner", "isWritable"} is accepted;
        a bare pubkey string lacks the flags needed to build an instruction.

        Raises:
            ValueError: If any account is not an object with a pubkey
        """
        parsed_accounts = []
        for account_data in accounts_data:
            if not isinstance(account_data, dict) or not account_data.get("pubkey"):
                raise ValueError(f"Unexpected account format: {account_data!r}")
            parsed_accounts.append(SwapAccountMeta(
                pubkey=account_data["pubkey"],
                is_signer=bool(account_data.get("isSigner", False)),
                is_writable=bool(account_data.get("isWritable", False))
            ))
        return parsed_accounts

    def _parse_instruction(self, instr_data: Any) -> SwapInstruction:
        if not isinstance(instr_data, dict) or not instr_data.get("programId"):
            raise ValueError(f"Unexpected instruction format: {instr_data!r}")
        return SwapInstruction(
            program_id=instr_data["programId"],
            accounts=self._parse_accounts(instr_data.get("accounts") or []),
            data=instr_data.get("data", "")
        )

    def _parse_optional(self, instr_data: Any) -> Optional[SwapInstruction]:
        if not instr_data:
            return None
        return self._parse_instruction(instr_data)

    def _parse_list(self, instrs_data: Any) -> List[SwapInstruction]:
        return [self._parse_instruction(i) for i in (instrs_data or [])]

    def _parse_swap_instructions(self, data: Dict[str, Any]) -> JupiterSwapInstructionsResponse:
        if not data.get("swapInstruction"):
            raise ValueError("response has no swapInstruction")

        # Deduplicate while preserving order
        seen = set()
        alt_addresses = [
            a for a in (data.get("addressLookupTableAddresses") or [])
            if not (a in seen or seen.add(a))
        ]

        return JupiterSwapInstructionsResponse(
            token_ledger_instruction=self._parse_optional(data.get("tokenLedgerInstruction")),
            compute_budget_instructions=self._parse_list(data.get("computeBudgetInstructions")),
            setup_instructions=self._parse_list(data.get("setupInstructions")),
            swap_instruction=self._parse_instruction(data["swapInstruction"]),
            cleanup_instruction=self._parse_optional(data.get("cleanupInstruction")),
            other_instructions=self._parse_list(data.get("otherInstructions")),
            address_lookup_table_addresses=alt_addresses,
            prioritization_fee_lamports=data.get("prioritizationFeeLamports")
        )

    async def get_swap_instructions(
        self,
        quote: JupiterQuote,
        user_public_key: str,
        config: Optional[SwapTransactionConfig] = None
    ) -> JupiterSwapInstructionsResponse:
        """
        Get decomposed swap instructions for a quote.

        Args:
            quote: JupiterQuote returned by get_quote
            user_public_key: User's public key (base58)
            config: Transaction-shaping options (defaults to SwapTransactionConfig())

        Returns:
            JupiterSwapInstructionsResponse with instructions and ALT addresses

        Raises:
            SwapInstructionsError: On transport failure, error status or malformed response
        """
        payload = {
            "quoteResponse": quote.raw,
            "userPublicKey": user_public_key
        }
        payload.update((config or SwapTransactionConfig()).to_payload())
        url = f"{self.api_url}/swap-instructions"

        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Jupiter swap instructions failed: {e.response.status_code} - {e.response.text}")
            raise SwapInstructionsError(
                f"Failed to get swap instructions: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Jupiter swap instructions request error: {e}")
            raise SwapInstructionsError(f"Failed to get swap instructions: {e}") from e
        except ValueError as e:
            raise SwapInstructionsError(f"Failed to get swap instructions: invalid JSON ({e})") from e

        if not isinstance(data, dict):
            raise SwapInstructionsError(f"Failed to get swap instructions: unexpected response {data!r}")
        if "error" in data:
            raise SwapInstructionsError(f"Failed to get swap instructions: {data['error']}")

        try:
            instructions = self._parse_swap_instructions(data)
        except (KeyError, TypeError, ValueError) as e:
            raise SwapInstructionsError(f"Failed to get swap instructions: {e}") from e

        logger.debug(
            f"Swap instructions: {len(instructions.compute_budget_instructions)} compute budget, "
            f"{len(instructions.setup_instructions)} setup, 1 swap, "
            f"{len(instructions.other_instructions)} other, "
            f"{1 if instructions.cleanup_instruction else 0} cleanup, "
            f"{len(instructions.address_lookup_table_addresses)} ALTs"
        )
        return instructions

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
