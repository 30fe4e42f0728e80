"""
namereg.index - the ownership index (identity → ordered list of names).

The index is derived from the primary record table. Appends keep insertion
order; removal locates the first equal entry, overwrites it with the last
entry and shrinks the list by one. Order within one identity's list is
therefore not stable across transfers.

The index itself is not thread-safe; the registry mutates it only while
holding its state lock.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Tuple

from .errors import IndexInvariantError
from .types import Identity, Record


class OwnershipIndex:
    def __init__(self) -> None:
        self._by_owner: Dict[Identity, List[str]] = {}

    def append(self, owner: Identity, name: str) -> None:
        self._by_owner.setdefault(owner, []).append(name)

    def remove(self, owner: Identity, name: str) -> None:
        """
        Remove `name` from `owner`'s list: swap with the last entry, then shrink.

        Raises IndexInvariantError if `name` is not listed for `owner`; the
        registry only calls this for the record's current owner, so a miss
        means the index has diverged from the record table.
        """
        names = self._by_owner.get(owner)
        if not names:
            raise IndexInvariantError("owner has no indexed names", name=name, owner=owner)
        try:
            i = names.index(name)
        except ValueError:
            raise IndexInvariantError("name missing from owner index", name=name, owner=owner) from None
        names[i] = names[-1]
        names.pop()
        if not names:
            del self._by_owner[owner]

    def move(self, name: str, old_owner: Identity, new_owner: Identity) -> None:
        self.remove(old_owner, name)
        self.append(new_owner, name)

    def names_of(self, owner: Identity) -> List[str]:
        return list(self._by_owner.get(owner, ()))

    def total(self) -> int:
        return sum(len(v) for v in self._by_owner.values())

    def owners(self) -> List[Identity]:
        return list(self._by_owner)

    # ---- rebuild / verification ---- #

    @classmethod
    def rebuild(cls, records: Iterable[Tuple[str, Record]]) -> "OwnershipIndex":
        """Recompute the index from (name, record) pairs, in iteration order."""
        idx = cls()
        for name, rec in records:
            if rec.exists:
                idx.append(rec.owner, name)
        return idx

    def check(self, records: Mapping[str, Record]) -> None:
        """
        Verify that every existing record is listed exactly once, under its
        owner, and that the index lists nothing else.
        """
        seen: Dict[str, Identity] = {}
        for owner, names in self._by_owner.items():
            if not names:
                raise IndexInvariantError("empty owner list retained", owner=owner)
            for name in names:
                if name in seen:
                    raise IndexInvariantError("name indexed more than once", name=name, owner=owner)
                seen[name] = owner
                rec = records.get(name)
                if rec is None or not rec.exists:
                    raise IndexInvariantError("indexed name has no record", name=name, owner=owner)
                if rec.owner != owner:
                    raise IndexInvariantError("name indexed under wrong owner", name=name, owner=owner)
        for name, rec in records.items():
            if rec.exists and name not in seen:
                raise IndexInvariantError("registered name missing from index", name=name, owner=rec.owner)


__all__ = ["OwnershipIndex"]
