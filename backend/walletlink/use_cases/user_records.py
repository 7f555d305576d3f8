"""User profile use-cases (create once, read many)."""
from __future__ import annotations

import logging
from collections.abc import Callable

from ..clock import unix_now
from ..domain_errors import AlreadyExistsError, NotFoundError, StoreFailureError
from ..store import USERS, ConflictError, Record, RecordStore, StoreError

logger = logging.getLogger(__name__)


def create_user_use_case(
    *,
    store: RecordStore,
    address: str,
    now: Callable[[], int] = unix_now,
) -> Record:
    """Create a fresh profile for ``address``; existing profiles are never touched."""
    try:
        existing = store.find_one(USERS, {"address": address})
    except StoreError:
        logger.exception("user.create store failure step=find_user address=%s", address)
        raise StoreFailureError() from None

    if existing is not None:
        logger.warning("user.create exists step=find_user address=%s", address)
        raise AlreadyExistsError()

    try:
        user = store.insert(
            USERS,
            {
                "address": address,
                "discord_id": None,
                "points": 0,
                "last_played": now(),
                "team": None,
            },
        )
    except ConflictError:
        # Lost a race with a concurrent create for the same address.
        logger.warning("user.create exists step=insert_user address=%s", address)
        raise AlreadyExistsError() from None
    except StoreError:
        logger.exception("user.create store failure step=insert_user address=%s", address)
        raise StoreFailureError() from None

    logger.info("user.create address=%s", address)
    return user


def get_user_use_case(*, store: RecordStore, address: str) -> Record:
    try:
        user = store.find_one(USERS, {"address": address})
    except StoreError:
        logger.exception("user.get store failure address=%s", address)
        raise StoreFailureError() from None

    if user is None:
        logger.warning("user.get not_found address=%s", address)
        raise NotFoundError()
    return user
