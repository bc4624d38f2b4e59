"""Initial conditions: a periodic box filled with a thermal hadron gas."""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING

from smash.model.fourvector import FourVector
from smash.model.particledata import ParticleData
from smash.model.particletype import resolve_species
from smash.physics.kinematics import sample_isotropic_direction

if TYPE_CHECKING:
    from smash.config import SimulationConfig
    from smash.model.fourvector import ThreeVector
    from smash.model.particles import Particles

logger = logging.getLogger(__name__)


def sample_thermal_momentum(
    mass: float, temperature: float, rng: random.Random | None = None
) -> ThreeVector:
    """Momentum drawn from a Boltzmann distribution p^2 exp(-E/T).

    |p| is drawn from p^2 exp(-p/T) (a gamma distribution) and accepted with
    probability exp(-(E - p)/T), which is exact since E >= p.
    """
    rng = rng or random.Random()
    while True:
        momentum = rng.gammavariate(3.0, temperature)
        energy = math.sqrt(mass * mass + momentum * momentum)
        if rng.random() < math.exp(-(energy - momentum) / temperature):
            return sample_isotropic_direction(rng) * momentum


def create_box_particles(
    particles: Particles, config: SimulationConfig, rng: random.Random | None = None
) -> int:
    """Fill ``particles`` with the configured species at time 0.

    Positions are uniform in [0, box_length)^3, momenta thermal at the
    configured temperature. Each requested particle is represented by
    ``testparticles`` entries.

    Returns:
        Number of particles created.

    Raises:
        KeyError: If a species in ``initial_particles`` is unknown.
    """
    rng = rng or random.Random()
    length = config.box_length
    created = 0
    for species, count in config.initial_particles.items():
        ptype = resolve_species(species)
        for _ in range(count * config.testparticles):
            p = ParticleData(ptype)
            momentum = sample_thermal_momentum(ptype.mass, config.temperature, rng)
            p.set_4momentum(ptype.mass, momentum)
            p.position = FourVector(
                0.0, rng.uniform(0.0, length), rng.uniform(0.0, length), rng.uniform(0.0, length)
            )
            particles.insert(p)
            created += 1
    logger.info(
        "Created %d particles in a %.1f fm box at T=%.3f GeV", created, length, config.temperature
    )
    return created
