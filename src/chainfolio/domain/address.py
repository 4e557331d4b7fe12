"""Wallet address validation."""

import re

from chainfolio.core.exceptions import ValidationError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate a 0x-prefixed 20-byte hex address and return it lowercased."""
    if not isinstance(address, str) or not ADDRESS_RE.match(address):
        raise ValidationError(f"Invalid address format: {address!r}")
    return address.lower()
