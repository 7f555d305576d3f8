"""Pydantic schemas for API."""
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, StringConstraints

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class LinkDiscordRequest(BaseModel):
    token: NonBlankStr
    discord: NonBlankStr
    address: str


class LinkDiscordResponse(BaseModel):
    message: str
    address: str
    discord_id: str
    # False when the link was applied but the token could not be marked used.
    token_finalized: bool = True


class UserCreate(BaseModel):
    address: str


class UserResponse(BaseModel):
    discord_id: Optional[str] = None
    address: str
    points: int
    last_played: int
    team: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UserCreatedResponse(BaseModel):
    message: str
    user: UserResponse
