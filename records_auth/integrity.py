"""
Content hashes for verifying that stored records were not altered.
"""

import hashlib
import hmac


def generate_data_hash(data: str) -> str:
    """Hex SHA-256 digest of ``data`` with a ``0x`` prefix."""
    return "0x" + hashlib.sha256(data.encode("utf-8")).hexdigest()


def verify_data_integrity(data: str, expected_hash: str) -> bool:
    """Compare in constant time; hex digits are matched case-insensitively."""
    if not isinstance(expected_hash, str):
        return False
    computed = generate_data_hash(data)
    return hmac.compare_digest(computed.encode("ascii"), expected_hash.strip().lower().encode("utf-8"))
