from __future__ import annotations

from dataclasses import dataclass

from ..config import settings
from ..models.market import World

ALL_NA = "all-na"

# Universalis world ids for the North American data centers
NA_WORLDS: tuple[World, ...] = tuple(
    World(id=wid, name=name, data_center=dc)
    for dc, worlds in {
        "aether": [
            (73, "adamantoise"), (79, "cactuar"), (54, "faerie"), (63, "gilgamesh"),
            (40, "jenova"), (65, "midgardsormr"), (99, "sargatanas"), (57, "siren"),
        ],
        "primal": [
            (78, "behemoth"), (93, "excalibur"), (53, "exodus"), (35, "famfrit"),
            (95, "hyperion"), (55, "lamia"), (64, "leviathan"), (77, "ultros"),
        ],
        "crystal": [
            (91, "balmung"), (34, "brynhildr"), (74, "coeurl"), (62, "diabolos"),
            (81, "goblin"), (75, "malboro"), (37, "mateus"), (41, "zalera"),
        ],
        "dynamis": [
            (406, "halicarnassus"), (407, "maduin"), (404, "marilith"), (405, "seraph"),
        ],
    }.items()
    for wid, name in worlds
)


class UnknownScopeError(ValueError):
    pass


@dataclass(frozen=True)
class Scope:
    worlds: tuple[World, ...]
    label: str
    aggregate: bool  # collapse the world dimension (data center / region view)

    @property
    def world_ids(self) -> list[int]:
        return [w.id for w in self.worlds]


def data_centers() -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for w in _visible_worlds():
        out.setdefault(w.data_center, []).append(w.name)
    return out


def world_by_id(world_id: int) -> World | None:
    return next((w for w in NA_WORLDS if w.id == world_id), None)


def world_by_name(name: str) -> World | None:
    key = name.strip().lower()
    return next((w for w in _visible_worlds() if w.name == key), None)


def _visible_worlds() -> list[World]:
    allowed = settings.allowed_worlds()
    if allowed is None:
        return list(NA_WORLDS)
    return [w for w in NA_WORLDS if w.name in allowed]


def resolve_scope(world_or_dc: str | None) -> Scope:
    key = (world_or_dc or ALL_NA).strip().lower()
    if key == ALL_NA:
        return Scope(worlds=tuple(_visible_worlds()), label="All NA", aggregate=True)
    dc_worlds = tuple(w for w in _visible_worlds() if w.data_center == key)
    if dc_worlds:
        return Scope(worlds=dc_worlds, label=key.capitalize(), aggregate=True)
    world = world_by_name(key)
    if world is None:
        raise UnknownScopeError(f"unknown world or data center: {world_or_dc}")
    return Scope(worlds=(world,), label=world.name.capitalize(), aggregate=False)
