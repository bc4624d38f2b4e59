"""ParticleData: kinematic and bookkeeping state of one particle at one instant."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from smash.model.fourvector import FourVector, ThreeVector
from smash.model.processtype import ProcessType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from smash.model.particletype import ParticleType

# Index of a ParticleData that has never been stored in a Particles registry
INVALID_INDEX = -1


@dataclass(frozen=True)
class HistoryData:
    """Process history of a particle.

    ``id_process`` doubles as the generation counter of the validity key: any
    commit that touches the particle hands out a new value.
    """

    id_process: int = 0
    collisions_per_particle: int = 0
    process_type: ProcessType = ProcessType.NONE
    time_last_collision: float = 0.0
    parent_pdgs: tuple[int, ...] = ()


@dataclass(eq=False)
class ParticleData:
    """State of one particle.

    ``id`` and ``index`` are owned by the Particles registry: ``id`` is handed
    out on insertion and never reused, ``index`` is the slot the particle
    occupies. Together with ``id_process`` they form the validity key of a
    copy. ``hole`` marks a removed slot and is only ever True inside the
    registry.

    Equality compares id, species and kinematic state, never object identity.
    """

    type: ParticleType
    momentum: FourVector = field(default_factory=FourVector)
    position: FourVector = field(default_factory=FourVector)
    id: int = -1
    history: HistoryData = field(default_factory=HistoryData)
    formation_time: float = 0.0
    xsec_scaling_factor: float = 1.0
    index: int = field(default=INVALID_INDEX, init=False)
    hole: bool = field(default=False, init=False, repr=False)

    @property
    def id_process(self) -> int:
        return self.history.id_process

    @property
    def pdgcode(self) -> int:
        return self.type.pdgcode

    @property
    def pole_mass(self) -> float:
        return self.type.mass

    @property
    def effective_mass(self) -> float:
        """Invariant mass of the current four-momentum."""
        return self.momentum.abs()

    def velocity(self) -> ThreeVector:
        return self.momentum.velocity()

    def set_4momentum(self, mass: float, *components: float | ThreeVector) -> None:
        """Set an on-shell four-momentum from a mass and a 3-momentum.

        Accepts either ``set_4momentum(m, px, py, pz)`` or
        ``set_4momentum(m, ThreeVector(...))``.
        """
        if len(components) == 1 and isinstance(components[0], ThreeVector):
            mom = components[0]
        elif len(components) == 3:
            mom = ThreeVector(*components)  # type: ignore[arg-type]
        else:
            raise TypeError("set_4momentum expects a ThreeVector or three components")
        energy = math.sqrt(mass * mass + mom.sqr())
        self.momentum = FourVector.from_threevec(energy, mom)

    def set_history(
        self,
        id_process: int,
        process_type: ProcessType,
        time_last_collision: float,
        parents: Iterable[ParticleData] = (),
    ) -> None:
        """Record that this particle came out of (or went through) a process.

        A WALL process only hands out the new ``id_process`` and process
        type: box wraps are not collisions, so the collision counter, the
        time of the last collision and the parents stay as they were.
        """
        if process_type == ProcessType.WALL:
            self.history = replace(self.history, id_process=id_process, process_type=process_type)
            return
        self.history = HistoryData(
            id_process=id_process,
            collisions_per_particle=self.history.collisions_per_particle + 1,
            process_type=process_type,
            time_last_collision=time_last_collision,
            parent_pdgs=tuple(p.pdgcode for p in parents),
        )

    def set_id_process(self, id_process: int) -> None:
        self.history = replace(self.history, id_process=id_process)

    def copy_to(self, dest: ParticleData) -> None:
        """Copy the mutable state into ``dest``.

        Copies history (and with it ``id_process``), momentum, position,
        formation time and cross-section scaling. Leaves ``dest``'s type, id,
        index and hole flag alone, so the registry can apply an update without
        disturbing its slot bookkeeping.
        """
        dest.history = self.history
        dest.momentum = self.momentum
        dest.position = self.position
        dest.formation_time = self.formation_time
        dest.xsec_scaling_factor = self.xsec_scaling_factor

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParticleData):
            return NotImplemented
        return (
            self.id == other.id
            and self.type == other.type
            and self.momentum == other.momentum
            and self.position == other.position
        )

    def __str__(self) -> str:
        return (
            f"{self.type.name} #{self.id} (m={self.effective_mass:.4f} GeV, "
            f"x={self.position}, p={self.momentum})"
        )


ParticleList = list[ParticleData]
