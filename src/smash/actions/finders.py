"""Finders: propose candidate actions for one time step from a particle snapshot.

Finders only read copies. Everything they return still has to pass the
validity check in the time-step loop before it is performed.
"""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING

from smash.actions.decayaction import DecayAction
from smash.actions.scatteraction import ScatterAction
from smash.physics.kinematics import FM2_MB, HBARC

if TYPE_CHECKING:
    from collections.abc import Sequence

    from smash.actions.scatteraction import StringProcess
    from smash.model.particledata import ParticleData

logger = logging.getLogger(__name__)

# Relative velocities below this (squared, in c^2) never meet
MIN_RELATIVE_VELOCITY_SQR = 1.0e-12


def collision_time(p1: ParticleData, p2: ParticleData) -> float:
    """Time until closest approach of two particles in the computational frame.

    Returns:
        -(dx . dv) / dv^2, or -1.0 when the relative velocity vanishes
        (parallel momenta never collide).
    """
    dv = p1.velocity() - p2.velocity()
    dv_sqr = dv.sqr()
    if dv_sqr < MIN_RELATIVE_VELOCITY_SQR:
        return -1.0
    dx = p1.position.threevec - p2.position.threevec
    return -dx.dot(dv) / dv_sqr


class ScatterActionsFinder:
    """Pairwise search for collisions within one time step.

    A pair collides if it reaches its closest approach within the step and
    its transverse distance squared is below sigma / pi.

    Args:
        elastic_parameter: Constant elastic cross section in mb.
        two_to_one: Include resonance formation.
        strings_switch: Include soft string excitation.
        string_interface: String model, required when strings are enabled.
        testparticles: Number of test particles; cross sections are scaled
            down by it.
        isotropic: Use isotropic elastic scattering.
        maximum_cross_section: Cut-off for the total cross section in mb.
        rng: Random generator handed to the created actions.
    """

    def __init__(
        self,
        elastic_parameter: float,
        two_to_one: bool = True,
        strings_switch: bool = False,
        string_interface: StringProcess | None = None,
        testparticles: int = 1,
        isotropic: bool = False,
        maximum_cross_section: float = 200.0,
        rng: random.Random | None = None,
    ) -> None:
        self.elastic_parameter = elastic_parameter
        self.two_to_one = two_to_one
        self.strings_switch = strings_switch
        self.string_interface = string_interface
        self.testparticles = testparticles
        self.isotropic = isotropic
        self.maximum_cross_section = maximum_cross_section
        self.rng = rng or random.Random()
        if strings_switch and string_interface is None:
            logger.warning("Strings are switched on but no string interface is set")

    def check_collision(
        self, p1: ParticleData, p2: ParticleData, dt: float
    ) -> ScatterAction | None:
        """Build the action for one pair, or None if the pair does not collide in [0, dt)."""
        time_until_collision = collision_time(p1, p2)
        if time_until_collision < 0.0 or time_until_collision >= dt:
            return None
        act = ScatterAction(
            p1,
            p2,
            p1.position.x0 + time_until_collision,
            isotropic=self.isotropic,
            rng=self.rng,
        )
        act.set_string_interface(self.string_interface)
        act.add_all_scatterings(self.elastic_parameter, self.two_to_one, self.strings_switch)
        xs = min(act.cross_section(), self.maximum_cross_section) / self.testparticles
        if xs <= 0.0:
            return None
        # 1 mb = 0.1 fm^2
        if act.transverse_distance_sqr() >= xs * FM2_MB / math.pi:
            return None
        return act

    def find_actions(self, search_list: Sequence[ParticleData], dt: float) -> list[ScatterAction]:
        """All collisions among ``search_list`` within the next ``dt`` fm."""
        actions = []
        for i, p1 in enumerate(search_list):
            for p2 in search_list[i + 1 :]:
                act = self.check_collision(p1, p2, dt)
                if act is not None:
                    actions.append(act)
        logger.debug(
            "Found %d collision candidates among %d particles", len(actions), len(search_list)
        )
        return actions


class DecayActionsFinder:
    """Proposes decays of unstable particles within one time step.

    The decay time is drawn from an exponential distribution with the
    time-dilated lifetime gamma * hbar c / Gamma.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def find_actions(self, search_list: Sequence[ParticleData], dt: float) -> list[DecayAction]:
        actions = []
        for p in search_list:
            if p.type.is_stable:
                continue
            mass = p.effective_mass
            if mass <= 0.0:
                continue
            gamma = p.momentum.x0 / mass
            lifetime = gamma * HBARC / p.type.width
            decay_time = self.rng.expovariate(1.0 / lifetime)
            if decay_time >= dt:
                continue
            act = DecayAction(p, p.position.x0 + decay_time, rng=self.rng)
            act.add_decays(p.type.decay_modes)
            actions.append(act)
        return actions
