"""Mean-field potentials: Skyrme and symmetry potentials from smeared densities.

Potentials are responsible for long-range interactions (the left side of the
Boltzmann equation); short-range interactions are the actions. Everything here
is a pure function of its arguments: the particle list is only read.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import TYPE_CHECKING

from smash.model.fourvector import ThreeVector
from smash.model.particletype import ParticleType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from smash.config import ExperimentParameters, PotentialsConfig
    from smash.model.particledata import ParticleData

logger = logging.getLogger(__name__)

# Nuclear ground state density in fm^-3
NUCLEAR_DENSITY = 0.168
# Step for the numerical gradient in fm
GRADIENT_STEP = 1.0e-4
MEV_TO_GEV = 1.0e-3


class DensityType(Enum):
    """Which charge a density counts."""

    BARYON = "baryon"
    BARYONIC_ISOSPIN = "baryonic_isospin"


def density_weight(ptype: ParticleType, density_type: DensityType) -> float:
    if density_type is DensityType.BARYON:
        return float(ptype.baryon_number)
    # Twice I3 of baryons: +1 for protons, -1 for neutrons
    if not ptype.is_baryon:
        return 0.0
    return float(ptype.isospin3)


def eckart_density(
    r: ThreeVector,
    plist: Iterable[ParticleData],
    sigma: float,
    cutoff_in_sigma: float,
    testparticles: int,
    density_type: DensityType = DensityType.BARYON,
) -> float:
    """Density in the local rest frame of the current, at point ``r``.

    Each particle contributes a Gaussian of width ``sigma`` in its own rest
    frame; particles further away than ``cutoff_in_sigma * sigma`` are ignored.
    The result is the invariant norm of the four-current, signed like j^0.
    """
    r_cut_sqr = (cutoff_in_sigma * sigma) ** 2
    two_sigma_sqr = 2.0 * sigma * sigma
    norm = (math.pi * two_sigma_sqr) ** 1.5 * testparticles
    j0 = j1 = j2 = j3 = 0.0
    for p in plist:
        weight = density_weight(p.type, density_type)
        if weight == 0.0:
            continue
        r_rel = r - p.position.threevec
        distance_sqr = r_rel.sqr()
        if distance_sqr > r_cut_sqr:
            continue
        mass = p.effective_mass
        if mass <= 0.0:
            continue
        u = p.momentum / mass
        u_r = u.threevec.dot(r_rel)
        smearing = math.exp(-(distance_sqr + u_r * u_r) / two_sigma_sqr) / norm
        j0 += weight * u.x0 * smearing
        j1 += weight * u.x1 * smearing
        j2 += weight * u.x2 * smearing
        j3 += weight * u.x3 * smearing
    invariant = j0 * j0 - j1 * j1 - j2 * j2 - j3 * j3
    if invariant <= 0.0:
        return 0.0
    return math.copysign(math.sqrt(invariant), j0)


class Potentials:
    """Skyrme and symmetry potentials.

    Args:
        config: Which potentials are switched on and their coefficients.
        parameters: Smearing width, cut-off and number of test particles.
    """

    def __init__(self, config: PotentialsConfig, parameters: ExperimentParameters) -> None:
        self.use_skyrme = config.use_skyrme
        self.use_symmetry = config.use_symmetry
        self.skyrme_a = config.skyrme_a
        self.skyrme_b = config.skyrme_b
        self.skyrme_tau = config.skyrme_tau
        self.symmetry_s = config.symmetry_s
        self.sigma = parameters.gaussian_sigma
        self.cutoff_in_sigma = parameters.gauss_cutoff_in_sigma
        self.testparticles = parameters.testparticles
        logger.info(
            "Potentials: skyrme=%s (A=%.1f, B=%.1f, tau=%.2f), symmetry=%s (S=%.1f)",
            self.use_skyrme,
            self.skyrme_a,
            self.skyrme_b,
            self.skyrme_tau,
            self.use_symmetry,
            self.symmetry_s,
        )

    def _density(
        self, r: ThreeVector, plist: Iterable[ParticleData], density_type: DensityType
    ) -> float:
        return eckart_density(
            r, plist, self.sigma, self.cutoff_in_sigma, self.testparticles, density_type
        )

    def skyrme_pot(self, baryon_density: float) -> float:
        """Skyrme potential in GeV for a given baryon density (fm^-3)."""
        ratio = baryon_density / NUCLEAR_DENSITY
        value = self.skyrme_a * ratio + self.skyrme_b * math.copysign(
            abs(ratio) ** self.skyrme_tau, ratio
        )
        return value * MEV_TO_GEV

    def symmetry_pot(self, isospin_density: float) -> float:
        """Symmetry potential in GeV felt by a particle with 2*I3 = +1."""
        return self.symmetry_s * isospin_density / NUCLEAR_DENSITY * MEV_TO_GEV

    def potential(
        self,
        r: ThreeVector,
        plist: list[ParticleData],
        acts_on: int | ParticleType,
    ) -> float:
        """Potential in GeV at point ``r`` acting on the species ``acts_on``.

        Only baryons feel these potentials; the sign flips for antibaryons.
        """
        ptype = acts_on if isinstance(acts_on, ParticleType) else ParticleType.find(acts_on)
        if not ptype.is_baryon:
            return 0.0
        total = 0.0
        if self.use_skyrme:
            total += ptype.antiparticle_sign() * self.skyrme_pot(
                self._density(r, plist, DensityType.BARYON)
            )
        if self.use_symmetry:
            total += ptype.isospin3 * self.symmetry_pot(
                self._density(r, plist, DensityType.BARYONIC_ISOSPIN)
            )
        return total

    def potential_gradient(
        self,
        r: ThreeVector,
        plist: list[ParticleData],
        acts_on: int | ParticleType,
    ) -> ThreeVector:
        """Spatial gradient of ``potential`` in GeV/fm, by central differences."""
        h = GRADIENT_STEP
        components = []
        for step in (ThreeVector(h, 0.0, 0.0), ThreeVector(0.0, h, 0.0), ThreeVector(0.0, 0.0, h)):
            forward = self.potential(r + step, plist, acts_on)
            backward = self.potential(r - step, plist, acts_on)
            components.append((forward - backward) / (2.0 * h))
        return ThreeVector(*components)
