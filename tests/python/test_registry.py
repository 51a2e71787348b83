from __future__ import annotations

import pytest
from pygame.math import Vector2

from flora.sim.core.entities import Attractor, Heat, Liquid, Particle
from flora.sim.core.mover import Mover
from flora.sim.core.registry import Category, EntityRegistry


def _liquid(entity_id: int) -> Liquid:
    return Liquid(mover=Mover(id=entity_id, is_static=True))


def test_list_by_category_keeps_insertion_order():
    registry = EntityRegistry()
    first, second, third = _liquid(3), _liquid(1), _liquid(2)
    for entity in (first, second, third):
        registry.add(entity, Category.LIQUID)

    assert registry.list_by_category("Liquid") == [first, second, third]
    assert registry.list_by_category(Category.AGENT) == []
    assert len(registry) == 3


def test_remove_drops_entity_from_every_category():
    registry = EntityRegistry()
    heat = Heat(mover=Mover(id=7, is_static=True))
    registry.add(heat, Category.HEAT)
    registry.add(heat, Category.MOVER)
    registry.add(heat, Category.HEAT)

    assert registry.categories_of(heat) == [Category.HEAT, Category.MOVER]
    assert len(registry.list_by_category(Category.HEAT)) == 1

    registry.remove(heat)
    assert heat not in registry
    assert registry.list_by_category(Category.HEAT) == []
    assert registry.list_by_category(Category.MOVER) == []


def test_unknown_category_fails_fast():
    registry = EntityRegistry()
    with pytest.raises(ValueError, match="Unknown entity category"):
        registry.add(_liquid(1), "Lava")
    with pytest.raises(ValueError):
        registry.list_by_category("liquid")


def test_removing_unregistered_entity_raises():
    registry = EntityRegistry()
    with pytest.raises(KeyError):
        registry.remove(_liquid(1))


def test_membership_changes_are_rejected_while_frozen():
    registry = EntityRegistry()
    liquid = _liquid(1)
    with registry.frozen():
        with pytest.raises(RuntimeError):
            registry.add(liquid, Category.LIQUID)
        registry.defer_add(liquid, Category.LIQUID)
        assert liquid not in registry
    assert not registry.is_frozen

    assert registry.flush() == (1, 0)
    assert liquid in registry


def test_flush_applies_removals_before_additions():
    registry = EntityRegistry()
    old = Attractor(mover=Mover(id=1, location=Vector2(1.0, 1.0), is_static=True))
    new = Attractor(mover=Mover(id=2, location=Vector2(2.0, 2.0), is_static=True))
    registry.add(old, Category.ATTRACTOR)

    registry.defer_remove(old)
    registry.defer_add(new, Category.ATTRACTOR)
    assert registry.list_by_category(Category.ATTRACTOR) == [old]

    assert registry.flush() == (1, 1)
    assert registry.list_by_category(Category.ATTRACTOR) == [new]


def test_entities_yields_each_entity_once():
    registry = EntityRegistry()
    heat = Heat(mover=Mover(id=1, is_static=True))
    liquid = _liquid(2)
    registry.add(heat, Category.HEAT)
    registry.add(heat, Category.MOVER)
    registry.add(liquid, Category.LIQUID)

    assert sorted(entity.id for entity in registry.entities()) == [1, 2]


def test_duplicate_ids_are_rejected():
    registry = EntityRegistry()
    particle = Particle(mover=Mover(id=7))
    impostor = Heat(mover=Mover(id=7, is_static=True))
    registry.add(particle, Category.MOVER)

    with pytest.raises(ValueError, match="already registered"):
        registry.add(impostor, Category.HEAT)
    assert impostor not in registry
    assert registry.list_by_category(Category.HEAT) == []
    with pytest.raises(KeyError):
        registry.remove(impostor)

    registry.remove(particle)
    assert len(registry) == 0
    registry.add(impostor, Category.HEAT)
    assert registry.list_by_category(Category.HEAT) == [impostor]


def test_defer_remove_cancels_pending_add():
    registry = EntityRegistry()
    liquid = _liquid(1)
    registry.defer_add(liquid, Category.LIQUID)
    registry.defer_remove(liquid)

    assert registry.flush() == (0, 0)
    assert liquid not in registry
    assert registry.list_by_category(Category.LIQUID) == []
