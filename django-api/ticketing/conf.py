"""Business policy read from the ``TICKETING`` settings dict."""

from dataclasses import dataclass
from typing import Self

from django.conf import settings

DEFAULTS = {
    "MAX_TICKETS_PER_PURCHASE": 10,
    "CLIENT_REF_MAX_LENGTH": 64,
    "STOCK_CACHE_ALIAS": "default",
    "STREAM_KEEPALIVE_SECONDS": 15,
    "PROPAGATION_RETRY_ATTEMPTS": 5,
    "PROPAGATION_RETRY_MAX_WAIT": 2.0,
}


def ticketing_setting(name: str):
    return getattr(settings, "TICKETING", {}).get(name, DEFAULTS[name])


@dataclass(frozen=True)
class PurchasePolicy:
    """Per-request limits applied by the purchase engine."""

    max_quantity: int = DEFAULTS["MAX_TICKETS_PER_PURCHASE"]
    client_ref_max_length: int = DEFAULTS["CLIENT_REF_MAX_LENGTH"]

    def __post_init__(self) -> None:
        if self.max_quantity < 1:
            raise ValueError("max_quantity must be at least 1")

    @classmethod
    def from_settings(cls) -> Self:
        return cls(
            max_quantity=ticketing_setting("MAX_TICKETS_PER_PURCHASE"),
            client_ref_max_length=ticketing_setting("CLIENT_REF_MAX_LENGTH"),
        )
