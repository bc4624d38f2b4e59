"""WallCrossingAction: moving a particle through a periodic box boundary."""

from __future__ import annotations

import copy
import random
from typing import TYPE_CHECKING

from smash.actions.action import Action
from smash.model.processtype import ProcessType

if TYPE_CHECKING:
    from smash.model.fourvector import FourVector
    from smash.model.particledata import ParticleData


class WallCrossingAction(Action):
    """Place a particle at its image on the opposite side of the box.

    Committed in place: the particle keeps its id and slot and gets a new
    id_process, so copies taken before the crossing become stale.
    """

    def __init__(
        self,
        p: ParticleData,
        new_position: FourVector,
        time: float,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__((p,), time, ProcessType.WALL, rng)
        self.new_position = new_position

    def generate_final_state(self) -> None:
        moved = copy.copy(self._incoming[0])
        moved.position = self.new_position
        self._outgoing = [moved]
