"""Discord link token redemption use-case."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..domain_errors import (
    AddressConflictError,
    InvalidTokenError,
    StoreFailureError,
    TokenAlreadyUsedError,
    TokenFinalizeFailure,
)
from ..store import TOKENS, USERS, ConflictError, Ne, Record, RecordStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkResult:
    """Outcome of a successful redemption."""

    address: str
    discord_id: str
    token_finalized: bool = True
    finalize_error: TokenFinalizeFailure | None = None


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _mask(token: str) -> str:
    return f"{token[:6]}..." if len(token) > 6 else "***"


def _store_call(step: str, context: dict[str, Any], fn: Callable[..., Any], *args, **kwargs) -> Any:
    try:
        return fn(*args, **kwargs)
    except StoreError:
        logger.exception("link.redeem store failure step=%s context=%s", step, context)
        raise StoreFailureError() from None


def _link_user(store: RecordStore, *, address: str, discord_id: str, context: dict[str, Any]) -> Record:
    unclaimed = _store_call(
        "find_unclaimed_profile",
        context,
        store.find_one,
        USERS,
        {"address": address, "discord_id": None},
    )
    try:
        if unclaimed is not None:
            # A profile already exists for this wallet (created before linking).
            # discord_id is unique, so it must be freed from any other row
            # before the profile can be claimed.
            previous = store.find_one(USERS, {"discord_id": discord_id, "address": Ne(address)})
            if previous is not None:
                store.update(USERS, {"id": previous["id"]}, {"discord_id": None})
            claimed = store.update(USERS, {"address": address, "discord_id": None}, {"discord_id": discord_id})
            if claimed == 0:
                logger.warning("link.redeem lost profile claim context=%s", context)
                if previous is not None and not store.supports_transactions:
                    # No rollback available: give the Discord id back to its old row.
                    store.update(USERS, {"id": previous["id"], "discord_id": None}, {"discord_id": discord_id})
                raise AddressConflictError()
            return {**unclaimed, "discord_id": discord_id}
        return store.upsert(USERS, {"address": address, "discord_id": discord_id}, conflict_key="discord_id")
    except ConflictError:
        logger.warning("link.redeem address claimed concurrently context=%s", context)
        raise AddressConflictError() from None
    except StoreError:
        logger.exception("link.redeem store failure step=link_user context=%s", context)
        raise StoreFailureError() from None


def _finalize_token(store: RecordStore, *, token: str, discord_id: str, now: datetime) -> None:
    affected = store.update(
        TOKENS,
        {"token": token, "discord_id": discord_id, "used": False},
        {"used": True, "used_at": now},
    )
    if affected == 0:
        # Another request flipped the flag between the read and this write.
        raise TokenAlreadyUsedError()


def redeem_link_token_use_case(
    *,
    store: RecordStore,
    token: str,
    discord_id: str,
    address: str,
    now_utc: Callable[[], datetime] = _now_utc,
) -> LinkResult:
    """Redeem a one-time token and link ``address`` to ``discord_id``.

    Steps short-circuit in order: token lookup, replay check, address
    conflict check, user link, token finalisation. Nothing is written before
    the user link step. When the store supports transactions the link and the
    token update commit together; otherwise a failed token update is reported
    on the result as :class:`TokenFinalizeFailure`.
    """
    context = {"token": _mask(token), "discord_id": discord_id, "address": address}
    logger.info("link.redeem discord=%s address=%s", discord_id, address)

    token_row = _store_call(
        "find_token",
        context,
        store.find_one,
        TOKENS,
        {"token": token, "discord_id": discord_id},
    )
    if token_row is None:
        logger.warning("link.redeem invalid token context=%s", context)
        raise InvalidTokenError()

    if token_row["used"]:
        logger.warning("link.redeem token replay context=%s", context)
        raise TokenAlreadyUsedError()

    conflict = _store_call(
        "find_address_conflict",
        context,
        store.find_one,
        USERS,
        {"address": address, "discord_id": Ne(discord_id)},
    )
    if conflict is not None:
        logger.warning("link.redeem address conflict existing_discord=%s context=%s", conflict["discord_id"], context)
        raise AddressConflictError()

    if store.supports_transactions:
        try:
            with store.transaction():
                _link_user(store, address=address, discord_id=discord_id, context=context)
                _finalize_token(store, token=token, discord_id=discord_id, now=now_utc())
        except TokenAlreadyUsedError:
            logger.warning("link.redeem lost token race context=%s", context)
            raise
        except StoreError:
            logger.exception("link.redeem store failure step=finalize_token context=%s", context)
            raise StoreFailureError() from None
        logger.info("link.redeem linked discord=%s address=%s", discord_id, address)
        return LinkResult(address=address, discord_id=discord_id)

    _link_user(store, address=address, discord_id=discord_id, context=context)
    try:
        _finalize_token(store, token=token, discord_id=discord_id, now=now_utc())
    except StoreError:
        failure = TokenFinalizeFailure()
        logger.exception("link.redeem %s context=%s", failure.code, context)
        return LinkResult(
            address=address,
            discord_id=discord_id,
            token_finalized=False,
            finalize_error=failure,
        )
    logger.info("link.redeem linked discord=%s address=%s", discord_id, address)
    return LinkResult(address=address, discord_id=discord_id)
