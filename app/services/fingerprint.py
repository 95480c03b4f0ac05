import hashlib
from typing import Any


def request_fingerprint(amount: Any, currency: str) -> str:
    """
    Stable digest of the fields that make two create requests "the same".

    Currency is compared case- and whitespace-insensitively; amount is taken
    verbatim.
    """
    canonical = f"amount={amount}&currency={currency.strip().lower()}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
