"""DecayAction: a resonance decaying into two particles."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from smash.actions.action import Action, ActionError
from smash.model.particledata import ParticleData
from smash.model.processtype import ProcessType
from smash.physics.kinematics import sample_two_body

if TYPE_CHECKING:
    from collections.abc import Iterable

    from smash.model.particletype import DecayBranch


class DecayAction(Action):
    """Decay of one unstable particle.

    The decay replaces one particle by two, so committing it goes through the
    uneven part of ``Particles.replace``: the first product takes over the
    parent's slot, the second one gets a new slot.

    Args:
        p: Copy of the decaying particle.
        time: Time of the decay (fm).
        rng: Random generator.
    """

    def __init__(self, p: ParticleData, time: float, rng: random.Random | None = None) -> None:
        super().__init__((p,), time, ProcessType.DECAY, rng)
        self._decay_channels: list[DecayBranch] = []
        self._total_width = 0.0

    def add_decay(self, branch: DecayBranch) -> None:
        """Add a two-body decay channel.

        Raises:
            ActionError: If the channel does not have exactly two products.
        """
        if len(branch.products) != 2:
            raise ActionError(f"Only two-body decays are supported, got {branch.products}")
        if branch.weight <= 0.0:
            return
        self._decay_channels.append(branch)
        self._total_width += branch.weight

    def add_decays(self, branches: Iterable[DecayBranch]) -> None:
        for branch in branches:
            self.add_decay(branch)

    @property
    def total_width(self) -> float:
        """Sum of the channel weights."""
        return self._total_width

    def _choose_channel(self) -> DecayBranch:
        if not self._decay_channels:
            raise ActionError(f"No decay channels for {self!r}")
        target = self.rng.uniform(0.0, self._total_width)
        running = 0.0
        for branch in self._decay_channels:
            running += branch.weight
            if target < running:
                return branch
        return self._decay_channels[-1]

    def generate_final_state(self) -> None:
        """Isotropic two-body decay in the rest frame of the parent, boosted back.

        Raises:
            ActionError: If no channel was added or the parent is too light
                for the chosen products.
        """
        parent = self._incoming[0]
        branch = self._choose_channel()
        first, second = branch.types()
        try:
            mom_a, mom_b = sample_two_body(
                parent.effective_mass, first.mass, second.mass, self.rng
            )
        except ValueError as e:
            raise ActionError(f"{parent.type.name} cannot decay: {e}") from e
        velocity = parent.velocity()
        self._outgoing = [
            ParticleData(first, momentum=mom_a.lorentz_boost(-velocity), position=parent.position),
            ParticleData(second, momentum=mom_b.lorentz_boost(-velocity), position=parent.position),
        ]
