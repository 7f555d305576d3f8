from __future__ import annotations

from datetime import datetime, timezone

import pytest

from walletlink.domain_errors import (
    AddressConflictError,
    InvalidTokenError,
    StoreFailureError,
    TokenAlreadyUsedError,
)
from walletlink.store import TOKENS, USERS, MemoryRecordStore, Ne, StoreError
from walletlink.use_cases.link_discord import redeem_link_token_use_case

ADDRESS = "0x" + "ab" * 20
OTHER_ADDRESS = "0x" + "cd" * 20
FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _issue(store: MemoryRecordStore, token: str = "T1", discord_id: str = "D1") -> None:
    store.insert(TOKENS, {"token": token, "discord_id": discord_id})


def _redeem(store, *, token="T1", discord_id="D1", address=ADDRESS):
    return redeem_link_token_use_case(
        store=store,
        token=token,
        discord_id=discord_id,
        address=address,
        now_utc=lambda: FIXED_NOW,
    )


class _FailingUpdateStore(MemoryRecordStore):
    """Fails every update against one collection."""

    def __init__(self, *, failing_collection: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._failing_collection = failing_collection

    def update(self, collection, filters, patch):
        if collection == self._failing_collection:
            raise StoreError("connection reset")
        return super().update(collection, filters, patch)


class _BrokenReadStore(MemoryRecordStore):
    def find_one(self, collection, filters):
        raise StoreError("relation does not exist")


class _RacingTokenStore(MemoryRecordStore):
    """Simulates another request consuming the token right before finalisation."""

    def update(self, collection, filters, patch):
        if collection == TOKENS:
            super().update(TOKENS, {"token": filters["token"]}, {"used": True})
        return super().update(collection, filters, patch)


def test_redeem_links_address_and_marks_token_used() -> None:
    store = MemoryRecordStore()
    _issue(store)

    result = _redeem(store)

    assert result.address == ADDRESS
    assert result.discord_id == "D1"
    assert result.token_finalized is True
    user = store.find_one(USERS, {"discord_id": "D1"})
    assert user["address"] == ADDRESS
    assert user["points"] == 0
    token = store.find_one(TOKENS, {"token": "T1"})
    assert token["used"] is True
    assert token["used_at"] == FIXED_NOW


def test_second_redemption_of_same_token_is_rejected() -> None:
    store = MemoryRecordStore()
    _issue(store)
    _redeem(store)

    with pytest.raises(TokenAlreadyUsedError, match="Token already used") as exc:
        _redeem(store)

    assert exc.value.http_status == 401
    assert exc.value.code == "TOKEN_ALREADY_USED"


def test_unknown_token_discord_pair_is_invalid() -> None:
    store = MemoryRecordStore()
    _issue(store, token="T1", discord_id="D1")

    with pytest.raises(InvalidTokenError) as exc:
        _redeem(store, token="T1", discord_id="D2")

    assert exc.value.http_status == 401
    assert store.find_many(USERS, {}) == []


def test_address_linked_to_other_discord_conflicts_and_keeps_original_link() -> None:
    store = MemoryRecordStore()
    _issue(store, token="T1", discord_id="D1")
    _issue(store, token="T2", discord_id="D2")
    _redeem(store, token="T1", discord_id="D1")

    with pytest.raises(AddressConflictError) as exc:
        _redeem(store, token="T2", discord_id="D2")

    assert exc.value.http_status == 400
    assert store.find_one(USERS, {"address": ADDRESS})["discord_id"] == "D1"
    assert store.find_one(TOKENS, {"token": "T2"})["used"] is False


def test_relinking_same_discord_overwrites_address() -> None:
    store = MemoryRecordStore()
    _issue(store, token="T1")
    _issue(store, token="T2")
    _redeem(store, token="T1", address=ADDRESS)

    _redeem(store, token="T2", address=OTHER_ADDRESS)

    users = store.find_many(USERS, {"discord_id": "D1"})
    assert [user["address"] for user in users] == [OTHER_ADDRESS]


def test_existing_unlinked_profile_is_claimed_instead_of_duplicated() -> None:
    store = MemoryRecordStore()
    store.insert(USERS, {"address": ADDRESS, "points": 42, "last_played": 1})
    _issue(store)

    _redeem(store)

    users = store.find_many(USERS, {})
    assert len(users) == 1
    assert users[0]["discord_id"] == "D1"
    assert users[0]["points"] == 42


def test_claiming_profile_detaches_discord_from_previous_address() -> None:
    store = MemoryRecordStore()
    _issue(store, token="T1")
    _issue(store, token="T2")
    _redeem(store, token="T1", address=OTHER_ADDRESS)
    store.insert(USERS, {"address": ADDRESS})

    _redeem(store, token="T2", address=ADDRESS)

    assert store.find_one(USERS, {"address": ADDRESS})["discord_id"] == "D1"
    assert store.find_one(USERS, {"address": OTHER_ADDRESS})["discord_id"] is None


def test_lost_token_race_rolls_back_link() -> None:
    store = _RacingTokenStore()
    _issue(store)

    with pytest.raises(TokenAlreadyUsedError):
        _redeem(store)

    assert store.find_many(USERS, {}) == []


def test_finalize_failure_inside_transaction_rolls_back_link() -> None:
    store = _FailingUpdateStore(failing_collection=TOKENS)
    _issue(store)

    with pytest.raises(StoreFailureError) as exc:
        _redeem(store)

    assert exc.value.http_status == 500
    assert store.find_many(USERS, {}) == []


def test_finalize_failure_without_transactions_reports_partial_success() -> None:
    store = _FailingUpdateStore(failing_collection=TOKENS, supports_transactions=False)
    _issue(store)

    result = _redeem(store)

    assert result.token_finalized is False
    assert result.finalize_error is not None
    assert result.finalize_error.code == "TOKEN_FINALIZE_FAILED"
    assert store.find_one(USERS, {"discord_id": "D1"})["address"] == ADDRESS
    assert store.find_one(TOKENS, {"token": "T1"})["used"] is False


def test_store_read_failure_surfaces_as_store_failure() -> None:
    with pytest.raises(StoreFailureError, match="Internal server error") as exc:
        _redeem(_BrokenReadStore())

    assert exc.value.code == "STORE_FAILURE"
    assert "relation" not in exc.value.message


class _AddressRaceStore(MemoryRecordStore):
    """Another Discord account claims the address right after the conflict check."""

    def __init__(self, *, racing_address: str, racing_discord_id: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._racing_row = {"address": racing_address, "discord_id": racing_discord_id}

    def find_one(self, collection, filters):
        row = super().find_one(collection, filters)
        if collection == USERS and isinstance(filters.get("discord_id"), Ne) and self._racing_row:
            super().insert(USERS, self._racing_row)
            self._racing_row = None
        return row


class _LostClaimStore(MemoryRecordStore):
    """Another request claims the unlinked profile before this one does."""

    def update(self, collection, filters, patch):
        is_claim = collection == USERS and "address" in filters and filters.get("discord_id", "") is None
        if is_claim:
            return 0
        return super().update(collection, filters, patch)


def test_address_claimed_between_check_and_upsert_conflicts() -> None:
    store = _AddressRaceStore(racing_address=ADDRESS, racing_discord_id="D1")
    _issue(store, token="T2", discord_id="D2")

    with pytest.raises(AddressConflictError):
        _redeem(store, token="T2", discord_id="D2")

    assert store.find_one(TOKENS, {"token": "T2"})["used"] is False
    assert [user["discord_id"] for user in store.find_many(USERS, {"address": ADDRESS})] == ["D1"]
    assert store.find_one(USERS, {"discord_id": "D2"}) is None


def _setup_lost_claim(store: MemoryRecordStore) -> None:
    store.insert(USERS, {"address": OTHER_ADDRESS, "discord_id": "D1"})
    store.insert(USERS, {"address": ADDRESS})
    _issue(store, token="T2", discord_id="D1")


def test_lost_profile_claim_conflicts_and_rolls_back_detach() -> None:
    store = _LostClaimStore()
    _setup_lost_claim(store)

    with pytest.raises(AddressConflictError):
        _redeem(store, token="T2", discord_id="D1")

    assert store.find_one(USERS, {"address": OTHER_ADDRESS})["discord_id"] == "D1"
    assert store.find_one(USERS, {"address": ADDRESS})["discord_id"] is None
    assert store.find_one(TOKENS, {"token": "T2"})["used"] is False


def test_lost_profile_claim_without_transactions_restores_previous_link() -> None:
    store = _LostClaimStore(supports_transactions=False)
    _setup_lost_claim(store)

    with pytest.raises(AddressConflictError):
        _redeem(store, token="T2", discord_id="D1")

    assert store.find_one(USERS, {"address": OTHER_ADDRESS})["discord_id"] == "D1"
    assert store.find_one(USERS, {"address": ADDRESS})["discord_id"] is None
    assert store.find_one(TOKENS, {"token": "T2"})["used"] is False
