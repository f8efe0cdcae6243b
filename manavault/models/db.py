"""
SQLAlchemy ORM models for persistent storage.

Rows mirror the domain dataclasses; conversion lives in `manavault.db.operations`.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardCacheDB(Base):
    """
    Local copy of card reference data.

    `payload` holds the Scryfall-shaped object so cached cards are parsed
    through the same boundary as live ones.
    """

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_usd_foil: Mapped[float | None] = mapped_column(Float, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CardCacheDB(id={self.id}, name={self.name})>"


class CollectionEntryDB(Base):
    """One printing owned by a user, with regular and foil counts."""

    __tablename__ = "collection_entries"
    __table_args__ = (UniqueConstraint("user_id", "card_id", name="uq_user_card"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_id: Mapped[str] = mapped_column(String(64), index=True)
    card_name: Mapped[str] = mapped_column(String(255))
    set_code: Mapped[str] = mapped_column(String(16), default="")
    collector_number: Mapped[str] = mapped_column(String(16), default="")
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    foil: Mapped[int] = mapped_column(Integer, default=0)
    condition: Mapped[str] = mapped_column(String(20), default="near_mint")
    language: Mapped[str] = mapped_column(String(8), default="en")

    # Price snapshot from the last sync
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_usd_foil: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_price: Mapped[float | None] = mapped_column(Float, nullable=True)

    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CollectionEntryDB(user={self.user_id}, card={self.card_name})>"


class DeckDB(Base):
    """A user's deck with its cards and match history."""

    __tablename__ = "decks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    format: Mapped[str] = mapped_column(String(50), default="commander")
    description: Mapped[str] = mapped_column(Text, default="")
    commander_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    commander_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    power_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    folder_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("deck_folders.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Sharing
    slug: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    visibility: Mapped[str] = mapped_column(String(16), default="private")
    archived: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    cards: Mapped[list["DeckCardDB"]] = relationship(
        back_populates="deck", cascade="all, delete-orphan", order_by="DeckCardDB.position"
    )
    matches: Mapped[list["DeckMatchDB"]] = relationship(
        back_populates="deck", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<DeckDB(id={self.id}, name={self.name}, format={self.format})>"


class DeckCardDB(Base):
    """A card slot in a deck, per board."""

    __tablename__ = "deck_cards"
    __table_args__ = (
        UniqueConstraint("deck_id", "card_id", "board", name="uq_deck_card_board"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[str] = mapped_column(String(64))
    card_name: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    board: Mapped[str] = mapped_column(String(8), default="main")

    # Keeps decklist order stable across reloads
    position: Mapped[int] = mapped_column(Integer, default=0)

    deck: Mapped["DeckDB"] = relationship(back_populates="cards")

    def __repr__(self) -> str:
        return f"<DeckCardDB(card={self.card_name}, qty={self.quantity}, board={self.board})>"


class DeckMatchDB(Base):
    """A recorded game result for a deck."""

    __tablename__ = "deck_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    result: Mapped[str] = mapped_column(String(8))
    opponent_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    opponent_archetype: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    deck: Mapped["DeckDB"] = relationship(back_populates="matches")

    def __repr__(self) -> str:
        return f"<DeckMatchDB(deck={self.deck_id}, result={self.result})>"


class WantedCardDB(Base):
    """A card on one of a user's want lists."""

    __tablename__ = "wanted_cards"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", "list_kind", name="uq_user_wanted_card"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_id: Mapped[str] = mapped_column(String(64))
    card_name: Mapped[str] = mapped_column(String(255))
    list_kind: Mapped[str] = mapped_column(String(16), default="wishlist")
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    target_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    alert_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<WantedCardDB(user={self.user_id}, card={self.card_name}, list={self.list_kind})>"


class DeckFolderDB(Base):
    """A user's folder for grouping decks."""

    __tablename__ = "deck_folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    color: Mapped[str] = mapped_column(String(16), default="#6366f1")
    icon: Mapped[str] = mapped_column(String(32), default="folder")
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<DeckFolderDB(id={self.id}, name={self.name})>"


class StorageContainerDB(Base):
    """A box, binder or other place holding physical cards."""

    __tablename__ = "storage_containers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(16), default="box")
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(32), nullable=True)
    deck_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items: Mapped[list["StorageItemDB"]] = relationship(
        back_populates="container", cascade="all, delete-orphan", order_by="StorageItemDB.id"
    )

    def __repr__(self) -> str:
        return f"<StorageContainerDB(id={self.id}, name={self.name}, type={self.type})>"


class StorageItemDB(Base):
    """Copies of a collected card placed in a container."""

    __tablename__ = "storage_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    container_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("storage_containers.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[str] = mapped_column(String(64), index=True)
    card_name: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    foil: Mapped[bool] = mapped_column(Boolean, default=False)
    slot: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    container: Mapped["StorageContainerDB"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<StorageItemDB(card={self.card_name}, qty={self.quantity}, foil={self.foil})>"
