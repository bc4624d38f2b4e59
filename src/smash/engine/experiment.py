"""Experiment: owns one particle registry and drives it through time."""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from smash.actions.finders import DecayActionsFinder, ScatterActionsFinder
from smash.config import SimulationConfig, get_config
from smash.engine.initial_conditions import create_box_particles
from smash.engine.simulation import run_time_step
from smash.model.fourvector import FourVector
from smash.model.particles import Particles
from smash.physics.potentials import Potentials

if TYPE_CHECKING:
    from smash.actions.scatteraction import StringProcess
    from smash.model.processtype import ProcessType

logger = logging.getLogger(__name__)


@dataclass
class ExperimentStats:
    """Counters of one run."""

    performed: Counter[str] = field(default_factory=Counter)
    discarded: int = 0
    failed: int = 0
    wall_crossings: int = 0
    steps: int = 0

    def record(self, process_type: ProcessType) -> None:
        self.performed[process_type.name] += 1

    def total_performed(self) -> int:
        return sum(self.performed.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "performed": dict(self.performed),
            "discarded": self.discarded,
            "failed": self.failed,
            "wall_crossings": self.wall_crossings,
            "steps": self.steps,
        }


class Experiment:
    """A box experiment: registry, clock, finders and optional potentials.

    Args:
        config: Simulation settings; defaults to ``get_config()``.
        string_interface: Optional string model for soft string excitation.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        string_interface: StringProcess | None = None,
    ) -> None:
        self.config = config or get_config()
        self.parameters = self.config.experiment_parameters()
        self.rng = random.Random(self.config.seed)
        self.particles = Particles(check_validity=self.config.validate_copies)
        # id_process 0 marks particles that never took part in a process
        self.id_process = 1
        self.time = 0.0
        self.stats = ExperimentStats()
        self.scatter_finder = ScatterActionsFinder(
            self.config.elastic_parameter,
            two_to_one=self.config.two_to_one,
            strings_switch=self.config.strings,
            string_interface=string_interface,
            testparticles=self.config.testparticles,
            maximum_cross_section=self.config.maximum_cross_section,
            rng=self.rng,
        )
        self.decay_finder = DecayActionsFinder(self.rng) if self.config.decays else None
        self.potentials = (
            Potentials(self.config.potentials, self.parameters)
            if self.config.use_potentials
            else None
        )

    def initialize(self) -> None:
        """Reset the registry and clock and fill the box."""
        self.particles.reset()
        self.id_process = 1
        self.time = 0.0
        self.stats = ExperimentStats()
        if self.config.seed is not None:
            self.rng.seed(self.config.seed)
        create_box_particles(self.particles, self.config, self.rng)
        logger.info("Experiment initialized: %s", self.config.summary())

    def run_time_step(self) -> int:
        """Advance by one time step; returns the number of performed actions."""
        return run_time_step(self)

    def run(self, end_time: float | None = None) -> ExperimentStats:
        """Run time steps until ``end_time`` (default: the configured end time)."""
        end_time = self.config.end_time if end_time is None else end_time
        # Half a step of slack against accumulated rounding of the clock
        while self.time + 0.5 * self.config.time_step < end_time:
            self.run_time_step()
        logger.info(
            "Run finished at t=%.3f fm: %d particles, %s",
            self.time,
            len(self.particles),
            self.stats.to_dict(),
        )
        return self.stats

    def total_momentum(self) -> FourVector:
        total = FourVector()
        for p in self.particles:
            total = total + p.momentum
        return total

    def conserved_quantities(self) -> dict[str, Any]:
        """Total four-momentum, charge and baryon number of all particles."""
        momentum = self.total_momentum()
        return {
            "energy": momentum.x0,
            "momentum": [momentum.x1, momentum.x2, momentum.x3],
            "charge": sum(p.type.charge for p in self.particles),
            "baryon_number": sum(p.type.baryon_number for p in self.particles),
        }

    def multiplicities(self) -> dict[str, int]:
        """Number of particles per species name."""
        return dict(Counter(p.type.name for p in self.particles))
