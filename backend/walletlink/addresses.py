"""Wallet address normalisation."""
from __future__ import annotations

import logging
import re

from .config import settings
from .domain_errors import ValidationError

logger = logging.getLogger(__name__)

ETH_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def normalize_address(value: str | None, *, strict: bool | None = None) -> str:
    """Validate a wallet address and return its lowercase form.

    ``strict`` defaults to the ``ADDRESS_VALIDATION`` setting.
    """
    if strict is None:
        strict = settings.strict_addresses

    candidate = (value or "").strip()
    if not candidate:
        logger.warning("address.rejected reason=empty")
        raise ValidationError(message="Address is required")
    if strict and not ETH_ADDRESS_RE.match(candidate):
        logger.warning("address.rejected reason=format value=%r", candidate[:64])
        raise ValidationError(message="Invalid Ethereum address")
    return candidate.lower()
