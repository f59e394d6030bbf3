"""Wallet address validation and normalisation."""

from eth_utils import is_hex_address

from app.utils.exceptions import InvalidWalletAddressError


def normalize_wallet_address(address: str | None) -> str:
    """
    Normalize wallet address for storage and comparison.

    Addresses are keyed case-insensitively: trimmed and lower-cased.
    No format check is done here, see validate_wallet_address().

    Args:
        address: Wallet address

    Returns:
        Normalized address ("" for None)
    """
    if not address:
        return ""
    return address.strip().lower()


def validate_wallet_address(address: str | None) -> tuple[bool, str | None]:
    """
    Validate a wallet address.

    Args:
        address: Wallet address to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Examples:
        >>> validate_wallet_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_wallet_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    if not is_hex_address(address):
        return False, "Invalid address format"

    return True, None


def is_valid_wallet_address(address: str | None) -> bool:
    """Shortcut for validate_wallet_address() when the reason is not needed."""
    is_valid, _ = validate_wallet_address(address)
    return is_valid


def require_wallet_address(address: str | None) -> str:
    """
    Validate and normalize, raising on bad input.

    Args:
        address: Wallet address

    Returns:
        Normalized address

    Raises:
        InvalidWalletAddressError: If address is malformed
    """
    is_valid, error = validate_wallet_address(address)
    if not is_valid:
        raise InvalidWalletAddressError(address, error)
    return normalize_wallet_address(address)
