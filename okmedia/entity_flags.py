"""Entity groups, collision modes, physics modes, types and references."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class EntityGroup(enum.IntFlag):
    """Groups an entity belongs to; combine with ``|``."""

    NONE = 0
    PLAYER = 1 << 0
    NPC = 1 << 1
    ENEMY = 1 << 2
    ITEM = 1 << 3
    PROJECTILE = 1 << 4
    PICKUP = 1 << 5
    BREAKABLE = 1 << 6


class CollisionMode(enum.IntFlag):
    """The collision bits that make up a physics mode."""

    WORLD = 1 << 1
    LITE = 1 << 4
    PASSIVE = 1 << 5
    ACTIVE = 1 << 6
    FIXED = 1 << 7


_MOVE = 1 << 0


class EntityPhysics(enum.IntFlag):
    """How an entity is moved and what it collides with."""

    NONE = 0
    MOVE = _MOVE
    WORLD = _MOVE | int(CollisionMode.WORLD)
    LITE = _MOVE | int(CollisionMode.WORLD) | int(CollisionMode.LITE)
    PASSIVE = _MOVE | int(CollisionMode.WORLD) | int(CollisionMode.PASSIVE)
    ACTIVE = _MOVE | int(CollisionMode.WORLD) | int(CollisionMode.ACTIVE)
    FIXED = _MOVE | int(CollisionMode.WORLD) | int(CollisionMode.FIXED)

    def collides_with(self, mode: CollisionMode) -> bool:
        """True if this physics mode has the bits of ``mode`` set."""
        return bool(int(self) & int(mode))


class EntityType(enum.IntEnum):
    """The kinds of entity the game knows about."""

    NONE = 0
    COIN = 1
    PLAYER = 2


ENTITY_TYPES_COUNT = len(EntityType)


@dataclass(frozen=True)
class EntityRef:
    """A safe handle to an entity: its id and storage index."""

    id: int = 0
    index: int = 0

    def __post_init__(self) -> None:
        for name in ("id", "index"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{name}={value} does not fit in 16 bits")

    @classmethod
    def none(cls) -> EntityRef:
        """The reference that never resolves to an entity."""
        return cls(0, 0)