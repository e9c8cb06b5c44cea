"""
Typed errors for each step of the swap pipeline.

Every error carries the name of the step that failed so a caller embedding
the pipeline can decide on its own retry or fallback policy.
"""
from typing import Optional


class SwapError(Exception):
    """Base error for a failed pipeline step."""

    step = "unknown"

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if step is not None:
            self.step = step

    def __str__(self) -> str:
        return f"[{self.step}] {self.message}"


class ConfigError(SwapError):
    step = "config"


class QuoteError(SwapError):
    step = "quote"


class SwapInstructionsError(SwapError):
    step = "swap_instructions"


class LookupTableError(SwapError):
    step = "lookup_tables"


class RpcError(SwapError):
    step = "blockhash"


class TransactionBuildError(SwapError):
    step = "assemble"


class SigningError(SwapError):
    step = "sign"


class SubmissionError(SwapError):
    step = "submit"


class ConfirmationError(SwapError):
    step = "confirm"


class ConfirmationTimeoutError(ConfirmationError):
    """Raised when the poll policy's timeout or attempt cap is exhausted."""
