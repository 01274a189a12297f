"""
Input Validation - Security-focused input sanitization.

Provides validation for all external inputs to the queue and its
collaborators to prevent:
- Integer overflows (amounts are bounded like uint256)
- Invalid address formats
- Oversized opaque payloads
"""

from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

MAX_ADDRESS_SIZE = 20
MAX_DETAILS_SIZE = 1024

# Field bounds
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MAX_DURATION = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte address."""
    return validate_bytes(address, name, expected_length=MAX_ADDRESS_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a valid quantity
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount", allow_zero: bool = True) -> Tuple[bool, str]:
    """Validate a token amount."""
    min_val = MIN_AMOUNT if allow_zero else 1
    return validate_integer(amount, name, min_val, MAX_AMOUNT)


def validate_duration(seconds: Any, name: str = "duration") -> Tuple[bool, str]:
    """Validate a duration in seconds."""
    return validate_integer(seconds, name, 0, MAX_DURATION)


def validate_bid_id(bid_id: Any) -> Tuple[bool, str]:
    """
    Validate the type of a bid identifier.

    Range is not checked here: any int is well-formed, and ids outside the
    queue's counter are reported by the queue as an invalid bid.
    """
    if not isinstance(bid_id, int) or isinstance(bid_id, bool):
        return False, f"bid_id must be int, got {type(bid_id).__name__}"
    return True, ""


def validate_details(details: Any, max_length: int = MAX_DETAILS_SIZE) -> Tuple[bool, str]:
    """Validate an opaque bid payload."""
    return validate_bytes(details, "details", max_length=max_length)


def validate_hex_string(value: Any, name: str, expected_bytes: Optional[int] = None) -> Tuple[bool, str]:
    """
    Validate a hex string (with or without 0x prefix).

    Args:
        value: Value to validate
        name: Field name
        expected_bytes: Expected byte length when decoded

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    hex_str = value[2:] if value.startswith("0x") else value

    if len(hex_str) % 2 != 0:
        return False, f"{name} has odd length, invalid hex"

    try:
        bytes.fromhex(hex_str)
    except ValueError:
        return False, f"{name} contains invalid hex characters"

    if expected_bytes is not None:
        actual_bytes = len(hex_str) // 2
        if actual_bytes != expected_bytes:
            return False, f"{name} must be {expected_bytes} bytes, got {actual_bytes}"

    return True, ""


def require(result: Tuple[bool, str]) -> None:
    """Raise ValueError for a failed structural validation."""
    valid, err = result
    if not valid:
        raise ValueError(err)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_integer",
    "validate_amount",
    "validate_duration",
    "validate_bid_id",
    "validate_details",
    "validate_hex_string",
    "require",
    "MAX_ADDRESS_SIZE",
    "MAX_DETAILS_SIZE",
    "MAX_AMOUNT",
]
