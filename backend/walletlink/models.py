"""SQLAlchemy models."""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from .clock import unix_now
from .database import Base


class User(Base):
    """Player profile keyed by wallet address."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Lowercase 0x-prefixed wallet address.
    address = Column(String(255), unique=True, nullable=False, index=True)
    # NULL until a link token is redeemed for this address.
    discord_id = Column(String(64), unique=True, nullable=True, index=True)
    points = Column(Integer, nullable=False, default=0)
    last_played = Column(BigInteger, nullable=False, default=unix_now)
    team = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class LinkToken(Base):
    """One-time token issued by the Discord bot for the wallet link flow."""
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    discord_id = Column(String(64), nullable=False, index=True)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_tokens_token_discord", "token", "discord_id"),
    )
