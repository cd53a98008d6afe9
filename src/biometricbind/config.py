"""
Configuration for the biometricbind library.

Settings are read once from environment variables (and a .env file when
present) at import time. The BCH parameters chosen here must stay the same
for the lifetime of a deployment: helpers produced under one (m, t) pair
cannot be decoded under another.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# BCH Codec
# =============================================================================
# Galois field order; the code length is 2^m - 1
BCH_M: int = int(os.getenv("BIOMETRICBIND_BCH_M", "12"))

# Number of correctable bit errors per codeword (at most 64)
BCH_T: int = int(os.getenv("BIOMETRICBIND_BCH_T", "64"))

# =============================================================================
# Quantization
# =============================================================================
# Bits emitted per distance value
BITS_PER_VALUE: int = int(os.getenv("BIOMETRICBIND_BITS_PER_VALUE", "8"))

# =============================================================================
# Storage
# =============================================================================
# Directory holding one enrollment document per identity
STORE_DIR: Path = Path(
    os.getenv("BIOMETRICBIND_STORE_DIR", str(Path.home() / ".biometricbind"))
)


def validate_configuration() -> bool:
    """
    Validate the current configuration settings.

    Returns:
        True if the configuration is valid.

    Raises:
        ValueError: If any setting is out of range. The message lists
            every problem found, not just the first.
    """
    errors = []

    if not 5 <= BCH_M <= 15:
        errors.append("BIOMETRICBIND_BCH_M must be between 5 and 15")

    if BCH_T < 1:
        errors.append("BIOMETRICBIND_BCH_T must be at least 1")
    elif BCH_T > 64:
        errors.append("BIOMETRICBIND_BCH_T must be at most 64")
    elif BCH_M * BCH_T >= (1 << BCH_M) - 1:
        errors.append("BIOMETRICBIND_BCH_T is too large for BIOMETRICBIND_BCH_M")

    if not 1 <= BITS_PER_VALUE <= 16:
        errors.append("BIOMETRICBIND_BITS_PER_VALUE must be between 1 and 16")

    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"- {error}" for error in errors)
        )

    return True


def get_config_summary() -> dict:
    """Return the active settings as a dictionary."""
    return {
        "bch": {"m": BCH_M, "t": BCH_T},
        "quantization": {"bits_per_value": BITS_PER_VALUE},
        "store_dir": str(STORE_DIR),
    }


# Validate configuration on import
validate_configuration()
