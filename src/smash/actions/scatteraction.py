"""ScatterAction: two-body collisions and their possible final states."""

from __future__ import annotations

import copy
import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from smash.actions.action import Action, ActionError
from smash.model.fourvector import FourVector, ThreeVector
from smash.model.particledata import ParticleData
from smash.model.particletype import ParticleType
from smash.model.processtype import ProcessType
from smash.physics.kinematics import GEV2_MB, pcm, pcm_sqr

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from smash.model.particledata import ParticleList

logger = logging.getLogger(__name__)

# Diffractive slope of the elastic t distribution, GeV^-2
ELASTIC_SLOPE = 6.0


@dataclass(frozen=True)
class CollisionBranch:
    """One possible outcome of a collision, weighted by its cross section (mb)."""

    weight: float
    particle_types: tuple[ParticleType, ...]
    process_type: ProcessType


class StringProcess(Protocol):
    """Interface to a string excitation and fragmentation model."""

    def cross_section(self, incoming: Sequence[ParticleData], sqrt_s: float) -> float:
        """Soft string cross section in mb for the given pair."""
        ...

    def fragment(
        self, incoming: Sequence[ParticleData], rng: random.Random
    ) -> ParticleList:
        """Hadrons produced by the string, with momenta in the computational frame."""
        ...


def _same_pair(products: tuple[int, ...], a: int, b: int) -> bool:
    return len(products) == 2 and sorted(products) == sorted((a, b))


def _rotate_from(axis: ThreeVector, cos_theta: float, phi: float) -> ThreeVector:
    """Unit vector at polar angle acos(cos_theta) and azimuth phi around ``axis``."""
    n = axis / axis.abs()
    helper = ThreeVector(1.0, 0.0, 0.0) if abs(n.x1) < 0.9 else ThreeVector(0.0, 1.0, 0.0)
    e1 = n.cross(helper)
    e1 = e1 / e1.abs()
    e2 = n.cross(e1)
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    return n * cos_theta + (e1 * math.cos(phi) + e2 * math.sin(phi)) * sin_theta


class ScatterAction(Action):
    """Collision of two particles.

    Channels are added with ``add_collision``/``add_all_scatterings``; the
    final state is drawn from them proportionally to their cross sections.

    Args:
        a: Copy of the first incoming particle.
        b: Copy of the second incoming particle.
        time: Time of the collision (fm).
        isotropic: Use isotropic angular distributions for elastic
            scattering instead of the forward-peaked diffractive one.
        string_formation_time: Formation time of string fragments (fm).
        rng: Random generator.
    """

    def __init__(
        self,
        a: ParticleData,
        b: ParticleData,
        time: float,
        isotropic: bool = False,
        string_formation_time: float = 1.0,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__((a, b), time, ProcessType.NONE, rng)
        self.isotropic = isotropic
        self.string_formation_time = string_formation_time
        self._collision_channels: list[CollisionBranch] = []
        self._total_cross_section = 0.0
        self._string_process: StringProcess | None = None

    @property
    def collision_channels(self) -> list[CollisionBranch]:
        return list(self._collision_channels)

    def set_string_interface(self, string_process: StringProcess | None) -> None:
        self._string_process = string_process

    def add_collision(self, branch: CollisionBranch) -> None:
        """Add one channel; non-positive weights are ignored."""
        if branch.weight <= 0.0:
            return
        self._collision_channels.append(branch)
        self._total_cross_section += branch.weight

    def add_collisions(self, branches: Iterable[CollisionBranch]) -> None:
        for branch in branches:
            self.add_collision(branch)

    def add_elastic(self, sigma: float) -> None:
        a, b = self._incoming
        self.add_collision(CollisionBranch(sigma, (a.type, b.type), ProcessType.ELASTIC))

    def cross_section(self) -> float:
        """Total cross section in mb."""
        return self._total_cross_section

    def two_to_one_cross_sections(self) -> list[CollisionBranch]:
        """Resonance formation a + b -> R from the Breit-Wigner formula.

        sigma = (2J+1)/((2j_a+1)(2j_b+1)) * 4 pi / p_cm^2
                * (Gamma^2/4) / ((sqrt(s) - M)^2 + Gamma^2/4) * BR(R -> a b)
        """
        a, b = self._incoming
        srts = self.sqrt_s()
        p_cm_sqr = pcm_sqr(srts, a.effective_mass, b.effective_mass)
        if p_cm_sqr <= 0.0:
            return []
        charge = a.type.charge + b.type.charge
        branches = []
        for resonance in ParticleType.list_all():
            if resonance.is_stable or resonance.charge != charge:
                continue
            total_weight = sum(mode.weight for mode in resonance.decay_modes)
            branching = sum(
                mode.weight
                for mode in resonance.decay_modes
                if _same_pair(mode.products, a.pdgcode, b.pdgcode)
            )
            if branching <= 0.0:
                continue
            spin_factor = resonance.spin_degeneracy / (
                a.type.spin_degeneracy * b.type.spin_degeneracy
            )
            half_width_sqr = 0.25 * resonance.width**2
            breit_wigner = half_width_sqr / ((srts - resonance.mass) ** 2 + half_width_sqr)
            sigma = (
                spin_factor
                * 4.0
                * math.pi
                / p_cm_sqr
                * breit_wigner
                * branching
                / total_weight
                * GEV2_MB
            )
            branches.append(CollisionBranch(sigma, (resonance,), ProcessType.TWO_TO_ONE))
        return branches

    def add_all_scatterings(
        self,
        elastic_parameter: float,
        two_to_one: bool = True,
        strings_switch: bool = False,
        string_threshold: float = 4.0,
    ) -> None:
        """Add every process this pair can undergo.

        Args:
            elastic_parameter: Constant elastic cross section in mb; values
                <= 0 switch elastic scattering off.
            two_to_one: Include resonance formation.
            strings_switch: Include soft string excitation above
                ``string_threshold`` (requires a string interface).
            string_threshold: Minimum sqrt(s) for strings, GeV.
        """
        if elastic_parameter > 0.0:
            self.add_elastic(elastic_parameter)
        if two_to_one:
            self.add_collisions(self.two_to_one_cross_sections())
        if strings_switch and self._string_process is not None:
            srts = self.sqrt_s()
            if srts >= string_threshold:
                a, b = self._incoming
                sigma = self._string_process.cross_section(self._incoming, srts)
                self.add_collision(
                    CollisionBranch(sigma, (a.type, b.type), ProcessType.STRING_SOFT)
                )

    def choose_channel(self) -> CollisionBranch:
        """Draw a channel proportionally to its weight.

        Raises:
            ActionError: If no channel with positive weight was added.
        """
        if not self._collision_channels:
            raise ActionError(f"No collision channels for {self!r}")
        target = self.rng.uniform(0.0, self._total_cross_section)
        running = 0.0
        for branch in self._collision_channels:
            running += branch.weight
            if target < running:
                return branch
        return self._collision_channels[-1]

    def generate_final_state(self) -> None:
        branch = self.choose_channel()
        self.process_type = branch.process_type
        if branch.process_type == ProcessType.ELASTIC:
            self.elastic_scattering()
        elif branch.process_type == ProcessType.TWO_TO_ONE:
            self.resonance_formation(branch.particle_types[0])
        elif branch.process_type == ProcessType.TWO_TO_TWO:
            self.inelastic_scattering(branch.particle_types)
        elif branch.process_type in (ProcessType.STRING_SOFT, ProcessType.STRING_HARD):
            self.string_excitation()
        else:
            raise ActionError(f"Unsupported process type {branch.process_type.name}")

    def elastic_scattering(self) -> None:
        """Same particles, new momenta; positions are kept."""
        self._outgoing = [copy.copy(p) for p in self._incoming]
        a, b = self._incoming
        if self.isotropic:
            self.sample_2body_phasespace((a.effective_mass, b.effective_mass))
            return
        srts = self.sqrt_s()
        beta_cm = self.total_momentum().velocity()
        momentum = pcm(srts, a.effective_mass, b.effective_mass)
        axis = a.momentum.lorentz_boost(beta_cm).threevec
        if momentum <= 0.0 or axis.sqr() <= 0.0:
            self.sample_2body_phasespace((a.effective_mass, b.effective_mass))
            return
        # Sample t from exp(b t) on [-4 p^2, 0]
        t_range = 4.0 * momentum * momentum
        u = self.rng.random()
        t = math.log(1.0 - u * (1.0 - math.exp(-ELASTIC_SLOPE * t_range))) / ELASTIC_SLOPE
        cos_theta = max(-1.0, min(1.0, 1.0 + t / (2.0 * momentum * momentum)))
        direction = _rotate_from(axis, cos_theta, self.rng.uniform(0.0, 2.0 * math.pi))
        mom = direction * momentum
        out_a, out_b = self._outgoing
        energy_a = math.sqrt(a.effective_mass**2 + momentum * momentum)
        energy_b = math.sqrt(b.effective_mass**2 + momentum * momentum)
        out_a.momentum = FourVector.from_threevec(energy_a, mom).lorentz_boost(-beta_cm)
        out_b.momentum = FourVector.from_threevec(energy_b, -mom).lorentz_boost(-beta_cm)

    def resonance_formation(self, resonance: ParticleType) -> None:
        """a + b -> R, with R at the interaction point carrying the total momentum."""
        new_particle = ParticleData(resonance)
        new_particle.momentum = self.total_momentum()
        new_particle.position = self.get_interaction_point()
        self._outgoing = [new_particle]

    def inelastic_scattering(self, particle_types: Sequence[ParticleType]) -> None:
        """a + b -> c + d with isotropic angles and pole masses."""
        if len(particle_types) != 2:
            raise ActionError(f"2->2 scattering needs two final-state types, got {particle_types}")
        middle = self.get_interaction_point()
        self._outgoing = [ParticleData(t, position=middle) for t in particle_types]
        self.sample_2body_phasespace()

    def string_excitation(self) -> None:
        """Delegate the final state to the string model.

        Raises:
            ActionError: If no string interface is set.
        """
        if self._string_process is None:
            raise ActionError("String excitation requested without a string interface")
        middle = self.get_interaction_point()
        fragments = self._string_process.fragment(self._incoming, self.rng)
        for p in fragments:
            p.position = middle
            p.formation_time = self.time_of_execution + self.string_formation_time
        self._outgoing = list(fragments)

    def transverse_distance_sqr(self) -> float:
        """Squared distance of closest approach in the centre-of-momentum frame."""
        a, b = self._incoming
        beta_cm = self.total_momentum().velocity()
        pos_diff = (a.position - b.position).lorentz_boost(beta_cm).threevec
        mom_diff = (
            a.momentum.lorentz_boost(beta_cm) - b.momentum.lorentz_boost(beta_cm)
        ).threevec
        distance_sqr = pos_diff.sqr()
        mom_diff_sqr = mom_diff.sqr()
        if mom_diff_sqr <= 0.0:
            return distance_sqr
        projection = pos_diff.dot(mom_diff)
        return max(0.0, distance_sqr - projection * projection / mom_diff_sqr)


