"""
Utility functions for the Nozomi swap client.
"""
import sys
from typing import Dict


def get_terminal_colors() -> Dict[str, str]:
    """
    Get ANSI color codes for terminal output.

    Returns empty strings if output is not a TTY (e.g., redirected to file),
    so log files stay free of escape codes.

    Returns:
        Dictionary with color codes: GREEN, CYAN, YELLOW, RED, DIM, RESET
    """
    use_color = sys.stdout.isatty()
    return {
        'GREEN': '\033[92m' if use_color else '',   # Amounts and counts
        'CYAN': '\033[96m' if use_color else '',    # Mints and signatures
        'YELLOW': '\033[93m' if use_color else '',  # Price impact, tip
        'RED': '\033[91m' if use_color else '',     # Failures
        'DIM': '\033[90m' if use_color else '',     # Secondary messages
        'RESET': '\033[0m' if use_color else ''
    }
