"""Origin hashing for submission events"""

import hashlib
from typing import Optional


def hash_ip(ip: Optional[str], salt: str = "") -> Optional[str]:
    """sha256 of `ip|salt`. None when the client address is unknown."""
    if not ip:
        return None
    return hashlib.sha256(f"{ip}|{salt}".encode("utf-8")).hexdigest()
