"""Action: one physics process between a fixed set of incoming particle copies.

An action is built from copies of its incoming particles, computes its final
state without touching the registry, and commits it in ``perform``. Between
construction and commit the copies may go stale (another process touched the
same particle first); the time-step loop checks ``is_valid`` right before each
commit and drops stale actions.
"""

from __future__ import annotations

import copy
import logging
import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from smash.model.fourvector import FourVector
from smash.model.processtype import ProcessType, is_string_soft_process, keeps_identity
from smash.physics.kinematics import sample_two_body

if TYPE_CHECKING:
    from collections.abc import Iterable

    from smash.model.particledata import ParticleData, ParticleList
    from smash.model.particles import Particles

logger = logging.getLogger(__name__)

# Tolerance for four-momentum conservation, GeV
CONSERVATION_TOLERANCE = 1.0e-6


class ActionError(Exception):
    """An action was used out of order or has no possible final state."""


class Action(ABC):
    """Base class of all processes.

    Args:
        incoming: Copies of the incoming particles. They are copied again so
            the action never aliases a caller's object.
        time_of_execution: Time at which the process happens (fm).
        process_type: Initial process type; subclasses may refine it when
            the final state is chosen.
        rng: Random generator for final-state sampling.
    """

    def __init__(
        self,
        incoming: Iterable[ParticleData],
        time_of_execution: float,
        process_type: ProcessType = ProcessType.NONE,
        rng: random.Random | None = None,
    ) -> None:
        self._incoming: ParticleList = [copy.copy(p) for p in incoming]
        self._outgoing: ParticleList = []
        self.time_of_execution = time_of_execution
        self.process_type = process_type
        self.rng = rng or random.Random()

    def __lt__(self, other: Action) -> bool:
        return self.time_of_execution < other.time_of_execution

    @property
    def incoming_particles(self) -> ParticleList:
        return self._incoming

    @property
    def outgoing_particles(self) -> ParticleList:
        return self._outgoing

    def is_valid(self, particles: Particles) -> bool:
        """True while every incoming copy still matches the registry."""
        return all(particles.is_valid(p) for p in self._incoming)

    def update_incoming(self, particles: Particles) -> None:
        """Refresh the incoming copies from the registry.

        Used after in-place propagation moved the particles; the validity
        keys are unchanged, only kinematics are refreshed.

        Raises:
            StaleParticleError: If an incoming copy is no longer valid.
        """
        self._incoming = [particles.lookup(p) for p in self._incoming]

    def get_interaction_point(self) -> FourVector:
        """Mean four-position of the incoming particles."""
        total = FourVector()
        for p in self._incoming:
            total = total + p.position
        return total / len(self._incoming)

    def total_momentum(self) -> FourVector:
        total = FourVector()
        for p in self._incoming:
            total = total + p.momentum
        return total

    def total_momentum_of_outgoing_particles(self) -> FourVector:
        total = FourVector()
        for p in self._outgoing:
            total = total + p.momentum
        return total

    def sqrt_s(self) -> float:
        return self.total_momentum().abs()

    def sample_2body_phasespace(self, masses: tuple[float, float] | None = None) -> None:
        """Give the two outgoing particles isotropic back-to-back momenta.

        Momenta are sampled in the centre-of-momentum frame of the incoming
        particles and boosted back into the computational frame.

        Raises:
            ActionError: If there are not exactly two outgoing particles or
                sqrt(s) is below the threshold.
        """
        if len(self._outgoing) != 2:
            raise ActionError(
                f"Two-body phase space needs 2 outgoing particles, got {len(self._outgoing)}"
            )
        a, b = self._outgoing
        m1, m2 = masses if masses is not None else (a.pole_mass, b.pole_mass)
        try:
            mom_a, mom_b = sample_two_body(self.sqrt_s(), m1, m2, self.rng)
        except ValueError as e:
            raise ActionError(str(e)) from e
        beta_cm = self.total_momentum().velocity()
        a.momentum = mom_a.lorentz_boost(-beta_cm)
        b.momentum = mom_b.lorentz_boost(-beta_cm)

    @abstractmethod
    def generate_final_state(self) -> None:
        """Fill the outgoing particles. Must not touch the registry."""

    def perform(self, particles: Particles, id_process: int) -> None:
        """Commit the final state to the registry.

        Every outgoing particle gets a history entry with ``id_process``.
        Elastic scattering and wall crossing update the particles in place
        (same ids); all other processes replace them (new ids). Afterwards the
        outgoing particles are valid copies and the incoming ones are stale.

        Raises:
            ActionError: If no final state was generated.
            StaleParticleError: If an incoming copy is no longer valid.
        """
        if not self._outgoing:
            raise ActionError(f"perform() called before generate_final_state() on {self!r}")
        for p in self._outgoing:
            p.set_history(id_process, self.process_type, self.time_of_execution, self._incoming)
        particles.update(
            self._incoming, self._outgoing, do_replace=not keeps_identity(self.process_type)
        )
        logger.debug(
            "Performed %s #%d: %s -> %s",
            self.process_type.name,
            id_process,
            " ".join(p.type.name for p in self._incoming),
            " ".join(p.type.name for p in self._outgoing),
            extra={
                "sim_time": self.time_of_execution,
                "id_process": id_process,
                "process_type": self.process_type.name,
            },
        )
        self.check_conservation(id_process)

    def check_conservation(self, id_process: int) -> str:
        """Compare four-momentum and charge of incoming and outgoing particles.

        Soft string processes are exempt from the momentum check because the
        fragmentation only conserves it up to the string formation.

        Returns:
            An empty string if everything is conserved, otherwise a
            description of the violation (also logged as a warning).
        """
        problems = []
        momentum_in = self.total_momentum()
        momentum_out = self.total_momentum_of_outgoing_particles()
        if not is_string_soft_process(self.process_type) and not momentum_in.is_close(
            momentum_out, CONSERVATION_TOLERANCE
        ):
            problems.append(f"4-momentum {momentum_in} -> {momentum_out}")
        charge_in = sum(p.type.charge for p in self._incoming)
        charge_out = sum(p.type.charge for p in self._outgoing)
        if charge_in != charge_out:
            problems.append(f"charge {charge_in} -> {charge_out}")
        if not problems:
            return ""
        message = f"Conservation violated in process #{id_process} ({self!r}): " + "; ".join(
            problems
        )
        logger.warning(
            message, extra={"sim_time": self.time_of_execution, "id_process": id_process}
        )
        return message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.process_type.name}, t={self.time_of_execution:.4f}, "
            f"in=[{', '.join(p.type.name for p in self._incoming)}], "
            f"out=[{', '.join(p.type.name for p in self._outgoing)}])"
        )


__all__ = ["Action", "ActionError", "ProcessType"]
