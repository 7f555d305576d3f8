from __future__ import annotations

import logging

import pytest

from walletlink.addresses import normalize_address
from walletlink.domain_errors import ValidationError


def test_strict_policy_lowercases_checksummed_address() -> None:
    address = "0x52908400098527886E0F7030069857D2E4169EE7"

    assert normalize_address(address, strict=True) == address.lower()


@pytest.mark.parametrize("value", ["0x123", "52908400098527886e0f7030069857d2e4169ee7", "0x" + "g" * 40])
def test_strict_policy_rejects_malformed_addresses(value: str) -> None:
    with pytest.raises(ValidationError, match="Invalid Ethereum address") as exc:
        normalize_address(value, strict=True)

    assert exc.value.http_status == 400


def test_permissive_policy_only_requires_non_empty_value() -> None:
    assert normalize_address(" SomeWallet ", strict=False) == "somewallet"
    with pytest.raises(ValidationError, match="Address is required"):
        normalize_address("   ", strict=False)


def test_rejected_addresses_are_logged(caplog) -> None:
    caplog.set_level(logging.WARNING, logger="walletlink.addresses")

    with pytest.raises(ValidationError):
        normalize_address("", strict=True)
    with pytest.raises(ValidationError):
        normalize_address("0x123", strict=True)

    messages = [record.getMessage() for record in caplog.records]
    assert "address.rejected reason=empty" in messages
    assert "address.rejected reason=format value='0x123'" in messages
