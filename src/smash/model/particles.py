"""Particles: the registry owning all particle storage of one experiment.

Storage is a list of ParticleData slots plus a free list of reusable slot
indices ("holes"). Handles given out to callers are value copies; a copy stays
meaningful only through its validity key (index, id, id_process), which the
registry checks on every access:

    >>> particles = Particles()
    >>> a = particles.insert(ParticleData(ParticleType.find(PI_P)))
    >>> particles.is_valid(a)
    True

The registry is not synchronized. All mutating calls must be serialized by the
caller (the time-step loop, or the server's simulation lock).
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

from smash.model.fourvector import FourVector
from smash.model.particledata import INVALID_INDEX, ParticleData, ParticleList
from smash.model.particletype import ParticleType

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

logger = logging.getLogger(__name__)


class ParticlesError(Exception):
    """Base class for misuse of the particle registry."""


class StaleParticleError(ParticlesError):
    """A particle copy no longer matches the registry state.

    Attributes:
        particle: The offending copy.
    """

    def __init__(self, particle: ParticleData, operation: str) -> None:
        super().__init__(
            f"{operation}: {particle.type.name} #{particle.id} "
            f"(index={particle.index}, id_process={particle.id_process}) is not a valid copy"
        )
        self.particle = particle
        self.operation = operation


class ParticleTypeMismatchError(ParticlesError):
    """An in-place update tried to change the species of a particle."""


class EmptyParticlesError(ParticlesError):
    """An operation that needs at least one particle was called on an empty registry."""


def _snapshot(slot: ParticleData) -> ParticleData:
    return copy.copy(slot)


class Particles:
    """Registry of all particles of one experiment.

    Invariants:
        - ``len(self) == data_size - len(dirty)``.
        - Every index in the free list is a hole below ``data_size``; holes at
          the tail are truncated, so the last used slot is never a hole.
        - Ids strictly increase and are never reused until ``reset()``.

    Args:
        check_validity: Verify copies passed to mutating calls and raise
            ``StaleParticleError`` on mismatch. Disable only when the caller
            already checks ``is_valid`` before each commit.
    """

    def __init__(self, check_validity: bool = True) -> None:
        self.check_validity = check_validity
        # Highest id handed out so far; the first particle gets id 0
        self._id_max = -1
        # Slots beyond _data_size are holes kept around for reuse
        self._data: list[ParticleData] = []
        self._data_size = 0
        self._dirty: list[int] = []

    # ------------------------------------------------------------------
    # Size and state
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self._data_size - len(self._dirty)

    def size(self) -> int:
        return len(self)

    def is_empty(self) -> bool:
        return self._data_size == 0

    @property
    def capacity(self) -> int:
        """Number of allocated slots, used or not."""
        return len(self._data)

    @property
    def data_size(self) -> int:
        """Number of slots up to and including the last live particle."""
        return self._data_size

    @property
    def free_slots(self) -> tuple[int, ...]:
        """Indices of holes waiting to be reused, in reuse order (last first)."""
        return tuple(self._dirty)

    @property
    def id_max(self) -> int:
        return self._id_max

    def time(self) -> float:
        """Time of the computational frame, taken from the first particle.

        Raises:
            EmptyParticlesError: If there are no particles.
        """
        return self.front().position.x0

    def reset(self) -> None:
        """Drop all particles and restart ids at 0."""
        logger.debug(
            "Resetting particles: size=%d, capacity=%d, id_max=%d",
            len(self),
            self.capacity,
            self._id_max,
        )
        self._id_max = -1
        self._data = []
        self._data_size = 0
        self._dirty = []

    # ------------------------------------------------------------------
    # Validity
    # ------------------------------------------------------------------

    def is_valid(self, copy: ParticleData) -> bool:
        """Check whether ``copy`` still describes the particle stored at its index.

        A copy is stale once its particle was removed or replaced (different
        id in the slot) or updated in place (same id, different id_process).
        """
        index = copy.index
        if index < 0 or index >= self._data_size:
            return False
        slot = self._data[index]
        return not slot.hole and slot.id == copy.id and slot.id_process == copy.id_process

    def _require_valid(self, copy: ParticleData, operation: str) -> None:
        if self.check_validity and not self.is_valid(copy):
            raise StaleParticleError(copy, operation)

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def _copy_in(self, to: ParticleData, source: ParticleData) -> None:
        """Write ``source`` into the slot ``to`` as a brand-new particle.

        The slot gets the next id. Index and hole flag are left to the caller.
        """
        self._id_max += 1
        to.id = self._id_max
        to.type = source.type
        source.copy_to(to)

    def _acquire_slot(self, ptype: ParticleType) -> ParticleData:
        """Return a slot for a new particle, preferring the free list."""
        if self._dirty:
            slot = self._data[self._dirty.pop()]
        elif self._data_size < len(self._data):
            slot = self._data[self._data_size]
            self._data_size += 1
        else:
            slot = ParticleData(ptype)
            slot.index = len(self._data)
            self._data.append(slot)
            self._data_size += 1
        slot.hole = False
        return slot

    def insert(self, p: ParticleData) -> ParticleData:
        """Store a new particle with the state of ``p``.

        The id of ``p`` is ignored; a fresh one is generated. ``p`` itself is
        not modified and does not become a valid copy.

        Returns:
            A copy of the stored particle, valid until the particle is touched
            by a commit.
        """
        slot = self._acquire_slot(p.type)
        self._copy_in(slot, p)
        return _snapshot(slot)

    def create(self, pdg: int) -> ParticleData:
        """Add one particle of species ``pdg`` at rest at the origin.

        Returns:
            The live entry. It may be positioned in place until the next
            structural change of the registry; keep copies, not this object.
        """
        ptype = ParticleType.find(pdg)
        slot = self._acquire_slot(ptype)
        self._copy_in(slot, ParticleData(ptype, momentum=FourVector(ptype.mass, 0.0, 0.0, 0.0)))
        return slot

    def create_many(self, n: int, pdg: int) -> None:
        """Add ``n`` particles of species ``pdg`` at rest at the origin."""
        ptype = ParticleType.find(pdg)
        template = ParticleData(ptype, momentum=FourVector(ptype.mass, 0.0, 0.0, 0.0))
        # Fill holes first, then extend the storage in one go
        while n > 0 and self._dirty:
            self._copy_in(self._acquire_slot(ptype), template)
            n -= 1
        if n <= 0:
            return
        start = self._data_size
        reused = min(n, len(self._data) - start)
        missing = n - reused
        for index in range(len(self._data), len(self._data) + missing):
            slot = ParticleData(ptype)
            slot.index = index
            self._data.append(slot)
        self._data_size = start + n
        for slot in self._data[start : self._data_size]:
            slot.hole = False
            self._copy_in(slot, template)

    # ------------------------------------------------------------------
    # Removal and commits
    # ------------------------------------------------------------------

    def _release_slot(self, index: int) -> None:
        slot = self._data[index]
        slot.hole = True
        slot.id = -1
        if index == self._data_size - 1:
            self._data_size -= 1
            # Keep the tail clean: trailing holes leave the free list
            while self._data_size > 0 and self._data[self._data_size - 1].hole:
                self._data_size -= 1
                self._dirty.remove(self._data_size)
        else:
            self._dirty.append(index)

    def remove(self, p: ParticleData) -> None:
        """Remove the particle identified by the valid copy ``p``.

        Raises:
            StaleParticleError: If ``p`` is not a valid copy.
        """
        self._require_valid(p, "remove")
        self._release_slot(p.index)

    def _validate_removals(self, to_remove: Sequence[ParticleData], operation: str) -> None:
        seen: set[int] = set()
        for p in to_remove:
            self._require_valid(p, operation)
            if p.index in seen:
                raise StaleParticleError(p, f"{operation} (listed twice)")
            seen.add(p.index)

    @staticmethod
    def _adopt(target: ParticleData, slot: ParticleData) -> None:
        """Turn ``target`` into a valid copy of ``slot``."""
        target.id = slot.id
        target.index = slot.index
        target.type = slot.type
        slot.copy_to(target)

    def replace(self, to_remove: Sequence[ParticleData], to_add: Sequence[ParticleData]) -> None:
        """Replace the particles ``to_remove`` by the new particles ``to_add``.

        ``to_remove[i]`` and ``to_add[i]`` are paired for the common prefix of
        both lists: the new particle takes over the old slot with a fresh id.
        Surplus old particles are removed, surplus new particles inserted.
        Afterwards every element of ``to_add`` has been patched in place into a
        valid copy of its stored particle.

        All removals are validated before anything is changed, so a failed
        call leaves the registry untouched.

        Raises:
            StaleParticleError: If any element of ``to_remove`` is not a valid
                copy, or the same particle is listed twice.
        """
        self._validate_removals(to_remove, "replace")
        n_common = min(len(to_remove), len(to_add))
        for old, new in zip(to_remove[:n_common], to_add[:n_common], strict=True):
            slot = self._data[old.index]
            self._copy_in(slot, new)
            self._adopt(new, slot)
        for old in to_remove[n_common:]:
            self._release_slot(old.index)
        for new in to_add[n_common:]:
            slot = self._acquire_slot(new.type)
            self._copy_in(slot, new)
            self._adopt(new, slot)

    def update_particle(self, p: ParticleData, new_state: ParticleData) -> ParticleData:
        """Apply ``new_state`` to the stored particle identified by ``p``.

        The particle keeps its id and slot; history (id_process), momentum and
        position are taken from ``new_state``. Every earlier copy, ``p``
        included, becomes stale once id_process changes.

        Returns:
            A fresh valid copy of the updated particle.

        Raises:
            StaleParticleError: If ``p`` is not a valid copy.
            ParticleTypeMismatchError: If the species differ.
        """
        self._require_valid(p, "update_particle")
        if p.type != new_state.type:
            raise ParticleTypeMismatchError(
                f"Cannot update {p.type.name} #{p.id} with a {new_state.type.name} state"
            )
        slot = self._data[p.index]
        new_state.copy_to(slot)
        return _snapshot(slot)

    def update(
        self,
        old_state: Sequence[ParticleData],
        new_state: Sequence[ParticleData],
        do_replace: bool,
    ) -> None:
        """Commit the outcome of a process.

        With ``do_replace`` the old particles are replaced by new ones (new
        ids). Otherwise each old particle is updated in place with the state of
        the matching new particle (same ids, e.g. elastic scattering). In both
        cases the elements of ``new_state`` end up as valid copies.

        Raises:
            StaleParticleError: If any element of ``old_state`` is not valid.
            ValueError: If an in-place update gets lists of different length.
        """
        if do_replace:
            self.replace(old_state, new_state)
            return
        if len(old_state) != len(new_state):
            raise ValueError(
                f"In-place update needs as many new states as old ones "
                f"({len(old_state)} != {len(new_state)})"
            )
        self._validate_removals(old_state, "update")
        for old, new in zip(old_state, new_state, strict=True):
            if old.type != new.type:
                raise ParticleTypeMismatchError(
                    f"Cannot update {old.type.name} #{old.id} with a {new.type.name} state"
                )
        for old, new in zip(old_state, new_state, strict=True):
            slot = self._data[old.index]
            new.copy_to(slot)
            self._adopt(new, slot)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, old_state: ParticleData) -> ParticleData:
        """Return a copy of the current state of the particle ``old_state`` refers to.

        Raises:
            StaleParticleError: If ``old_state`` is not a valid copy.
        """
        self._require_valid(old_state, "lookup")
        return _snapshot(self._data[old_state.index])

    def get(self, old_state: ParticleData) -> ParticleData | None:
        """Like ``lookup`` but returns None for stale copies."""
        if not self.is_valid(old_state):
            return None
        return _snapshot(self._data[old_state.index])

    def find_by_id(self, particle_id: int) -> ParticleData | None:
        """Linear search for the live particle with ``particle_id``."""
        for slot in self:
            if slot.id == particle_id:
                return _snapshot(slot)
        return None

    def __iter__(self) -> Iterator[ParticleData]:
        """Iterate over the live entries in slot order, skipping holes.

        Entries are live: kinematics may be adjusted in place (propagation),
        but the registry must not be structurally changed while iterating.
        """
        data = self._data
        for index in range(self._data_size):
            slot = data[index]
            if not slot.hole:
                yield slot

    def __reversed__(self) -> Iterator[ParticleData]:
        data = self._data
        for index in range(self._data_size - 1, -1, -1):
            slot = data[index]
            if not slot.hole:
                yield slot

    def front(self) -> ParticleData:
        """First live entry.

        Raises:
            EmptyParticlesError: If there are no particles.
        """
        for slot in self:
            return slot
        raise EmptyParticlesError("front() called on an empty particle list")

    def back(self) -> ParticleData:
        """Last live entry.

        Raises:
            EmptyParticlesError: If there are no particles.
        """
        if self._data_size == 0:
            raise EmptyParticlesError("back() called on an empty particle list")
        # The tail is never a hole
        return self._data[self._data_size - 1]

    def copy_to_vector(self) -> ParticleList:
        """Copies of all live particles, in slot order."""
        if not self._dirty:
            return [_snapshot(slot) for slot in self._data[: self._data_size]]
        return [_snapshot(slot) for slot in self]

    def __str__(self) -> str:
        lines = [f"Particles ({len(self)}):"]
        for slot in self:
            lines.append(f"  {slot.effective_mass:8.4f} GeV  {slot.type.name}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Particles(size={len(self)}, data_size={self._data_size}, "
            f"capacity={self.capacity}, holes={len(self._dirty)}, id_max={self._id_max})"
        )


__all__ = [
    "INVALID_INDEX",
    "EmptyParticlesError",
    "ParticleTypeMismatchError",
    "Particles",
    "ParticlesError",
    "StaleParticleError",
]
