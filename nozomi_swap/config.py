"""
Configuration loading for the Nozomi swap client.

Values come from the process environment (optionally seeded from a .env
file) once at startup; the resulting SwapConfig is passed explicitly to
every component.
"""
import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import base58
import dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .confirmation import PollPolicy
from .errors import ConfigError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_JUPITER_API_URL = "https://quote-api.jup.ag/v6"
DEFAULT_NOZOMI_URL = "http://ams1.nozomi.temporal.xyz"

NATIVE_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
NOZOMI_TIP_ADDRESS = Pubkey.from_string("TEMPaMeCRFAS9EKF53Jd6KpHxgL47uWLcpFArU1Fanq")


def sol_to_lamports(sol: float) -> int:
    """Convert SOL to lamports (rounded to the nearest lamport)."""
    return int(round(sol * LAMPORTS_PER_SOL))


DEFAULT_TIP_LAMPORTS = sol_to_lamports(0.001)
DEFAULT_AMOUNT_LAMPORTS = sol_to_lamports(0.1)
DEFAULT_SLIPPAGE_BPS = 50


@dataclass(frozen=True)
class SwapConfig:
    """Explicit configuration for one swap run."""
    nozomi_uuid: str
    wallet: Keypair = field(repr=False)
    rpc_url: str = DEFAULT_RPC_URL
    nozomi_url: str = DEFAULT_NOZOMI_URL
    jupiter_api_url: str = DEFAULT_JUPITER_API_URL
    jupiter_api_key: Optional[str] = field(default=None, repr=False)
    input_mint: str = NATIVE_MINT
    output_mint: str = USDC_MINT
    amount_lamports: int = DEFAULT_AMOUNT_LAMPORTS
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    tip_lamports: int = DEFAULT_TIP_LAMPORTS
    tip_account: Pubkey = NOZOMI_TIP_ADDRESS
    poll_policy: PollPolicy = field(default_factory=PollPolicy)
    log_level: str = "INFO"

    @property
    def relay_url(self) -> str:
        """Relay endpoint qualified with the access token."""
        return f"{self.nozomi_url.rstrip('/')}/?c={self.nozomi_uuid}"


def load_wallet(private_key_str: str) -> Keypair:
    """
    Decode a wallet keypair.

    Accepts a base58-encoded 64-byte secret key or a JSON array of 64
    integers (solana-keygen file format).

    Raises:
        ConfigError: If the key cannot be decoded
    """
    text = private_key_str.strip()
    try:
        if text.startswith('['):
            key_bytes = bytes(json.loads(text))
        else:
            key_bytes = base58.b58decode(text)
        return Keypair.from_bytes(key_bytes)
    except Exception as e:
        # Never include the key material in the message
        raise ConfigError(f"PRIVATE_KEY is not a valid keypair: {type(e).__name__}") from e


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        raise ConfigError(f"{name} not set")
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _get_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ConfigError(f"{name} must be a finite number, got {value!r}")
    return number


def load_dotenv_file(env_file: Optional[Path] = None) -> None:
    """Load .env into the process environment without overriding set variables."""
    env_path = env_file or Path(__file__).parent.parent / '.env'
    if env_path.exists():
        dotenv.load_dotenv(env_path, override=False)
        logger.debug(f"Loaded environment from {env_path}")
    else:
        logger.warning(f".env file not found at {env_path}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> SwapConfig:
    """
    Build a SwapConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        SwapConfig

    Raises:
        ConfigError: If NOZOMI_UUID or PRIVATE_KEY is missing, or any value is malformed
    """
    env = os.environ if environ is None else environ

    nozomi_uuid = _require(env, 'NOZOMI_UUID')
    wallet = load_wallet(_require(env, 'PRIVATE_KEY'))

    amount = _get_int(env, 'SWAP_AMOUNT_LAMPORTS', DEFAULT_AMOUNT_LAMPORTS)
    if amount <= 0:
        raise ConfigError(f"SWAP_AMOUNT_LAMPORTS must be positive, got {amount}")

    slippage_bps = _get_int(env, 'SLIPPAGE_BPS', DEFAULT_SLIPPAGE_BPS)
    if not 0 <= slippage_bps <= 10_000:
        raise ConfigError(f"SLIPPAGE_BPS must be between 0 and 10000, got {slippage_bps}")

    tip_lamports = _get_int(env, 'NOZOMI_TIP_LAMPORTS', DEFAULT_TIP_LAMPORTS)
    if tip_lamports < 0:
        raise ConfigError(f"NOZOMI_TIP_LAMPORTS must be >= 0, got {tip_lamports}")

    try:
        poll_policy = PollPolicy(
            interval=_get_float(env, 'CONFIRM_POLL_INTERVAL', 0.0),
            timeout=_get_float(env, 'CONFIRM_TIMEOUT', None),
            max_attempts=_get_int(env, 'CONFIRM_MAX_ATTEMPTS', None)
        )
    except ValueError as e:
        raise ConfigError(f"Invalid confirmation policy: {e}") from e

    for name in ('INPUT_MINT', 'OUTPUT_MINT'):
        mint = env.get(name)
        if mint:
            try:
                Pubkey.from_string(mint.strip())
            except Exception as e:
                raise ConfigError(f"{name} is not a valid address: {mint!r}") from e

    config = SwapConfig(
        nozomi_uuid=nozomi_uuid,
        wallet=wallet,
        rpc_url=env.get('RPC_URL') or DEFAULT_RPC_URL,
        nozomi_url=env.get('NOZOMI_URL') or DEFAULT_NOZOMI_URL,
        jupiter_api_url=env.get('JUPITER_API_URL') or DEFAULT_JUPITER_API_URL,
        jupiter_api_key=env.get('JUPITER_API_KEY') or None,
        input_mint=(env.get('INPUT_MINT') or NATIVE_MINT).strip(),
        output_mint=(env.get('OUTPUT_MINT') or USDC_MINT).strip(),
        amount_lamports=amount,
        slippage_bps=slippage_bps,
        tip_lamports=tip_lamports,
        poll_policy=poll_policy,
        log_level=(env.get('LOG_LEVEL') or 'INFO').upper()
    )

    logger.debug(
        f"Config loaded: wallet={config.wallet.pubkey()}, rpc={config.rpc_url}, "
        f"amount={config.amount_lamports}, slippage_bps={config.slippage_bps}, "
        f"tip={config.tip_lamports}"
    )
    return config
