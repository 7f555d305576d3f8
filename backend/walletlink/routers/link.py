"""Discord link routes.

The Discord bot issues a one-time token and sends the player to the web app
with ``?token=...&discord=...``. Once a wallet is connected the web app calls
``POST /link`` to bind the wallet address to the Discord account.
"""
from fastapi import APIRouter, Depends

from ..addresses import normalize_address
from ..schemas import LinkDiscordRequest, LinkDiscordResponse
from ..store import RecordStore, get_record_store
from ..use_cases.link_discord import redeem_link_token_use_case

router = APIRouter(tags=["link"])


@router.post("/link", response_model=LinkDiscordResponse)
def link_discord(
    payload: LinkDiscordRequest,
    store: RecordStore = Depends(get_record_store),
):
    """Redeem a link token and attach the wallet address to the Discord id."""
    address = normalize_address(payload.address)
    result = redeem_link_token_use_case(
        store=store,
        token=payload.token,
        discord_id=payload.discord,
        address=address,
    )
    return LinkDiscordResponse(
        message="Discord linked successfully",
        address=result.address,
        discord_id=result.discord_id,
        token_finalized=result.token_finalized,
    )
