from __future__ import annotations

import pytest

from marketboard.config import settings
from marketboard.services.scope import NA_WORLDS, UnknownScopeError, data_centers, resolve_scope, world_by_id


def test_all_na() -> None:
    scope = resolve_scope("all-na")
    assert scope.aggregate
    assert scope.label == "All NA"
    assert len(scope.worlds) == len(NA_WORLDS)
    assert resolve_scope(None).label == "All NA"


def test_data_center_is_aggregated() -> None:
    scope = resolve_scope("Aether")
    assert scope.aggregate
    assert scope.label == "Aether"
    assert 73 in scope.world_ids
    assert all(w.data_center == "aether" for w in scope.worlds)


def test_single_world() -> None:
    scope = resolve_scope(" Adamantoise ")
    assert not scope.aggregate
    assert scope.label == "Adamantoise"
    assert scope.world_ids == [73]


def test_unknown_scope() -> None:
    with pytest.raises(UnknownScopeError):
        resolve_scope("phoenix")


def test_world_lookup_and_dc_listing() -> None:
    world = world_by_id(404)
    assert world is not None and world.name == "marilith"
    assert world_by_id(1) is None
    assert set(data_centers()) == {"aether", "primal", "crystal", "dynamis"}


def test_allowed_worlds_restrict_scope(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "ALLOWED_WORLDS", "Adamantoise, Cactuar")
    assert resolve_scope("aether").world_ids == [73, 79]
    with pytest.raises(UnknownScopeError):
        resolve_scope("gilgamesh")
