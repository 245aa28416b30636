"""
ilock.state.journal: checkpoints, revert/commit over component state.

Every engine component names the attributes that make up its persisted state
in a `JOURNALED` tuple. Two kinds of attribute are supported:

- `JournaledMap` values (balances, allowances, stakeholder records, ...).
  Each map keeps its own stack of undo frames; a write records the key's
  previous value the first time that key is touched inside a checkpoint.
- Immutable values (ints, bools, bytes, tuples, frozen dataclasses). These
  are saved by reference at `begin()`; components rebind them, never mutate
  them in place.

Checkpoint cost is therefore proportional to the number of journaled
attributes, and commit/revert cost to the number of keys written, never to
the total size of the state.

    j = Journal([ledger, pools, vesting])
    with j.atomic():
        ledger.transfer(a, b, 10)
        raise SomeError        # -> touched keys and rebound scalars restored

Checkpoints nest; an inner `atomic()` that fails is reverted without
disturbing the outer one. Committing an inner checkpoint folds its undo
records into the parent so the outer one can still revert them.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import (Any, Dict, Iterable, Iterator, List, Mapping,
                    MutableMapping, Optional, Protocol, Set, Tuple, TypeVar)

from ilock.runtime.events import EventSink

K = TypeVar("K")
V = TypeVar("V")

_MISSING: Any = object()


# =============================================================================
# Undo-logged mapping
# =============================================================================


class JournaledMap(MutableMapping[K, V]):
    """Dict-like store that remembers prior values of keys written per checkpoint."""

    __slots__ = ("_data", "_frames")

    def __init__(self, initial: Optional[Mapping[K, V]] = None) -> None:
        self._data: Dict[K, V] = dict(initial or {})
        self._frames: List[Dict[K, Any]] = []

    # --- mapping protocol ---

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __setitem__(self, key: K, value: V) -> None:
        self._remember(key)
        self._data[key] = value

    def __delitem__(self, key: K) -> None:
        if key not in self._data:
            raise KeyError(key)
        self._remember(key)
        del self._data[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def get(self, key: K, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __repr__(self) -> str:
        return f"JournaledMap({self._data!r})"

    # --- undo frames ---

    def _remember(self, key: K) -> None:
        if self._frames:
            frame = self._frames[-1]
            if key not in frame:
                frame[key] = self._data.get(key, _MISSING)

    def checkpoint(self) -> None:
        self._frames.append({})

    def commit(self) -> None:
        top = self._frames.pop()
        if self._frames:
            parent = self._frames[-1]
            for key, old in top.items():
                parent.setdefault(key, old)

    def revert(self) -> None:
        for key, old in self._frames.pop().items():
            if old is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = old

    def pending_keys(self) -> Set[K]:
        """Keys written inside the innermost open checkpoint."""
        return set(self._frames[-1]) if self._frames else set()


# =============================================================================
# Journal
# =============================================================================


class Journaled(Protocol):
    JOURNALED: Tuple[str, ...]


# One checkpoint: the maps it opened a frame on, plus saved scalar bindings.
_Checkpoint = Tuple[List[JournaledMap], List[Tuple[Journaled, str, Any]]]

_MUTABLE = (dict, list, set, bytearray)


class Journal:
    """Stack of checkpoints over a fixed set of components."""

    def __init__(self, components: Iterable[Journaled] = (), *, sink: Optional[EventSink] = None) -> None:
        self._components: List[Journaled] = list(components)
        self._sink = sink
        self._stack: List[_Checkpoint] = []

    def track(self, component: Journaled) -> None:
        if self._stack:
            raise RuntimeError("cannot add components inside an open checkpoint")
        self._components.append(component)

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        return len(self._stack)

    def begin(self) -> int:
        maps: List[JournaledMap] = []
        saved: List[Tuple[Journaled, str, Any]] = []
        for c in self._components:
            for name in c.JOURNALED:
                value = getattr(c, name)
                if isinstance(value, JournaledMap):
                    value.checkpoint()
                    maps.append(value)
                elif isinstance(value, _MUTABLE):
                    raise TypeError(
                        f"{type(c).__name__}.{name} is a mutable {type(value).__name__}; "
                        "use JournaledMap or an immutable value"
                    )
                else:
                    saved.append((c, name, value))
        self._stack.append((maps, saved))
        if self._sink is not None:
            self._sink.begin()
        return len(self._stack)

    def commit(self) -> None:
        if not self._stack:
            raise RuntimeError("commit without begin")
        maps, _ = self._stack.pop()
        for m in maps:
            m.commit()
        if self._sink is not None:
            self._sink.commit()

    def revert(self) -> None:
        if not self._stack:
            raise RuntimeError("revert without begin")
        maps, saved = self._stack.pop()
        for m in maps:
            m.revert()
        for component, name, value in saved:
            setattr(component, name, value)
        if self._sink is not None:
            self._sink.rollback()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run a block as one all-or-nothing transaction."""
        self.begin()
        try:
            yield
        except BaseException:
            self.revert()
            raise
        else:
            self.commit()


__all__ = ["Journal", "Journaled", "JournaledMap"]
