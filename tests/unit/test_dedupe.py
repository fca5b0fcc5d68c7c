"""Testes da deduplicação de mensagens de entrada."""

from __future__ import annotations

from lembre_ai.infra.dedupe import InMemoryMessageDedupe


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_first_seen_then_duplicate() -> None:
    dedupe = InMemoryMessageDedupe()
    assert dedupe.mark_if_new("wamid.1") is True
    assert dedupe.mark_if_new("wamid.1") is False
    assert dedupe.mark_if_new("wamid.2") is True


def test_entries_expire() -> None:
    clock = _Clock()
    dedupe = InMemoryMessageDedupe(ttl_seconds=60, clock=clock)
    dedupe.mark_if_new("wamid.1")

    clock.now += 61

    assert dedupe.mark_if_new("wamid.1") is True


def test_bounded_size() -> None:
    dedupe = InMemoryMessageDedupe(max_entries=2)
    for key in ("a", "b", "c"):
        dedupe.mark_if_new(key)

    assert len(dedupe) == 2
    assert dedupe.mark_if_new("a") is True


def test_clear() -> None:
    dedupe = InMemoryMessageDedupe()
    dedupe.mark_if_new("a")
    assert dedupe.clear("a") is True
    assert dedupe.mark_if_new("a") is True
