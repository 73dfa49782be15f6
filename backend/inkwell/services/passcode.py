"""Numeric one-time passcode generation."""

import secrets

PASSCODE_LENGTH = 6


def generate_passcode(length: int = PASSCODE_LENGTH) -> str:
    """Generate a fixed-width numeric passcode.

    Uniform over all ``10**length`` digit strings, leading zeros included,
    drawn from the OS CSPRNG.

    Args:
        length: Number of digits.

    Returns:
        Zero-padded numeric string of exactly ``length`` characters.

    Raises:
        ValueError: If length is not positive.
    """
    if length <= 0:
        msg = f"Passcode length must be positive, got {length}"
        raise ValueError(msg)
    return str(secrets.randbelow(10**length)).zfill(length)
