"""Cross sections for photon production in pion-rho scatterings.

Every channel is a 2 -> 2 process with a photon in the final state, mediated
by pion exchange with a rho-pi-pi coupling. Total cross sections integrate the
differential one over the kinematically allowed Mandelstam t range. All values
are in mb and cut off at ``maximum_cross_section``.

Conventions for Mandelstam t per topology:
    pi pi -> rho gamma:  t = (p_pi1 - p_gamma)^2, u = (p_pi2 - p_gamma)^2
    pi rho -> pi gamma:  t = (p_pi_in - p_pi_out)^2, u = (p_pi_in - p_gamma)^2
"""

from __future__ import annotations

import bisect
import logging
import math
from enum import Enum, StrEnum
from functools import lru_cache

from smash.physics.kinematics import GEV2_MB, get_t_range, pcm_sqr

logger = logging.getLogger(__name__)

PION_MASS = 0.138
RHO_POLE_MASS = 0.776
# Fine structure constant and the rho-pi-pi coupling
ALPHA_EM = 1.0 / 137.036
G_RHO_PI_PI = 6.0
E_SQR = 4.0 * math.pi * ALPHA_EM

# Simpson intervals for the t integration (must be even)
T_INTEGRATION_STEPS = 200
# Lookup table range in sqrt(s) above threshold, GeV
TABLE_SRTS_SPAN = 2.5
TABLE_POINTS = 250


class ComputationMethod(Enum):
    """How total cross sections are evaluated."""

    ANALYTIC = "analytic"
    LOOKUP = "lookup"


class PhotonChannel(StrEnum):
    """Photon production channels."""

    PI_PI_RHO0 = "pi_pi_rho0"  # pi+ pi- -> rho0 gamma
    PI_PI0_RHO = "pi_pi0_rho"  # pi+- pi0 -> rho+- gamma
    PI_RHO0_PI = "pi_rho0_pi"  # pi+- rho0 -> pi+- gamma
    PI_RHO_PI0 = "pi_rho_pi0"  # pi+- rho-+ -> pi0 gamma
    PI0_RHO_PI = "pi0_rho_pi"  # pi0 rho+- -> pi+- gamma


_ANNIHILATION_CHANNELS = frozenset({PhotonChannel.PI_PI_RHO0, PhotonChannel.PI_PI0_RHO})

# Relative charge-coupling weights per channel
_CHANNEL_WEIGHTS: dict[PhotonChannel, float] = {
    PhotonChannel.PI_PI_RHO0: 1.0,
    PhotonChannel.PI_PI0_RHO: 0.5,
    PhotonChannel.PI_RHO0_PI: 1.0,
    PhotonChannel.PI_RHO_PI0: 0.5,
    PhotonChannel.PI0_RHO_PI: 0.5,
}


def _masses(channel: PhotonChannel, m_rho: float) -> tuple[float, float, float, float]:
    """(m1, m2, m3, m4) ordered so that t = (p1 - p3)^2 follows the module conventions."""
    if channel in _ANNIHILATION_CHANNELS:
        # Photon listed third so that t is taken against it
        return PION_MASS, PION_MASS, 0.0, m_rho
    return PION_MASS, m_rho, PION_MASS, 0.0


def _matrix_element_sqr(channel: PhotonChannel, s: float, t: float, m_rho: float) -> float:
    """Spin-averaged squared amplitude in GeV^0 (dimensionless)."""
    m_pi_sqr = PION_MASS * PION_MASS
    m_rho_sqr = m_rho * m_rho
    coupling = 2.0 * E_SQR * G_RHO_PI_PI**2 * _CHANNEL_WEIGHTS[channel]
    if channel in _ANNIHILATION_CHANNELS:
        u = 2.0 * m_pi_sqr + m_rho_sqr - s - t
        denominator = (m_pi_sqr - t) * (m_pi_sqr - u)
        if denominator <= 0.0:
            return 0.0
        return coupling * (u - t) ** 2 / denominator
    u = 2.0 * m_pi_sqr + m_rho_sqr - s - t
    denominator = (s - m_pi_sqr) * (m_pi_sqr - u)
    if denominator <= 0.0:
        return 0.0
    # Average over the three rho polarizations
    return coupling * (u - s) ** 2 / denominator / 3.0


def _threshold_sqr(channel: PhotonChannel, m_rho: float) -> float:
    m1, m2, m3, m4 = _masses(channel, m_rho)
    return max(m1 + m2, m3 + m4) ** 2


def _analytic_diff(channel: PhotonChannel, s: float, t: float, m_rho: float) -> float:
    if s <= _threshold_sqr(channel, m_rho):
        return 0.0
    m1, m2, _, _ = _masses(channel, m_rho)
    p_in_sqr = pcm_sqr(math.sqrt(s), m1, m2)
    if p_in_sqr <= 0.0:
        return 0.0
    return _matrix_element_sqr(channel, s, t, m_rho) / (64.0 * math.pi * s * p_in_sqr) * GEV2_MB


def _analytic_total(channel: PhotonChannel, s: float, m_rho: float) -> float:
    """Simpson integration of the differential cross section over t."""
    if s <= _threshold_sqr(channel, m_rho):
        return 0.0
    t_min, t_max = get_t_range(math.sqrt(s), *_masses(channel, m_rho))
    if t_max <= t_min:
        return 0.0
    n = T_INTEGRATION_STEPS
    h = (t_max - t_min) / n
    total = _analytic_diff(channel, s, t_min, m_rho) + _analytic_diff(channel, s, t_max, m_rho)
    for i in range(1, n):
        weight = 4.0 if i % 2 else 2.0
        total += weight * _analytic_diff(channel, s, t_min + i * h, m_rho)
    return total * h / 3.0


@lru_cache(maxsize=64)
def _lookup_table(
    channel: PhotonChannel, m_rho: float
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Grid of (s, sigma) from threshold up to TABLE_SRTS_SPAN above it."""
    srts_min = math.sqrt(_threshold_sqr(channel, m_rho))
    step = TABLE_SRTS_SPAN / (TABLE_POINTS - 1)
    s_values = tuple((srts_min + i * step) ** 2 for i in range(TABLE_POINTS))
    sigma_values = tuple(_analytic_total(channel, s, m_rho) for s in s_values)
    logger.debug(
        "Built photon lookup table for %s (m_rho=%.3f GeV, %d points)",
        channel.value,
        m_rho,
        TABLE_POINTS,
    )
    return s_values, sigma_values


def _interpolate(channel: PhotonChannel, s: float, m_rho: float) -> float | None:
    """Linear interpolation in the lookup table; None outside of it."""
    s_values, sigma_values = _lookup_table(channel, round(m_rho, 4))
    if s <= s_values[0]:
        return 0.0
    if s > s_values[-1]:
        return None
    i = bisect.bisect_left(s_values, s)
    s_lo, s_hi = s_values[i - 1], s_values[i]
    fraction = (s - s_lo) / (s_hi - s_lo)
    return sigma_values[i - 1] + fraction * (sigma_values[i] - sigma_values[i - 1])


class PhotonCrossSection:
    """Photon production cross sections in mb, cut off at a maximum.

    Instances only hold the computation method and the cut-off, so calls
    are pure functions of their arguments and safe to share.

    Args:
        method: ``ANALYTIC`` integrates on every call; ``LOOKUP`` interpolates
            a cached table of total cross sections (differential cross
            sections are always analytic).
        maximum_cross_section: Cut-off in mb applied to every returned value.
    """

    def __init__(
        self,
        method: ComputationMethod = ComputationMethod.ANALYTIC,
        maximum_cross_section: float = 200.0,
    ) -> None:
        if maximum_cross_section <= 0.0:
            raise ValueError(f"maximum_cross_section must be positive, got {maximum_cross_section}")
        self.method = method
        self.cut_off = maximum_cross_section

    def xs(self, channel: PhotonChannel | str, s: float, m_rho: float = RHO_POLE_MASS) -> float:
        """Total cross section of ``channel`` at Mandelstam s (GeV^2)."""
        channel = PhotonChannel(channel)
        value: float | None = None
        if self.method is ComputationMethod.LOOKUP:
            value = _interpolate(channel, s, m_rho)
        if value is None:
            value = _analytic_total(channel, s, m_rho)
        return min(value, self.cut_off)

    def xs_diff(
        self, channel: PhotonChannel | str, s: float, t: float, m_rho: float = RHO_POLE_MASS
    ) -> float:
        """Differential cross section dsigma/dt (mb/GeV^2)."""
        return min(_analytic_diff(PhotonChannel(channel), s, t, m_rho), self.cut_off)

    def t_range(
        self, channel: PhotonChannel | str, s: float, m_rho: float = RHO_POLE_MASS
    ) -> tuple[float, float]:
        return get_t_range(math.sqrt(s), *_masses(PhotonChannel(channel), m_rho))

    def xs_pi_pi_rho0(self, s: float, m_rho: float) -> float:
        return self.xs(PhotonChannel.PI_PI_RHO0, s, m_rho)

    def xs_pi_pi0_rho(self, s: float, m_rho: float) -> float:
        return self.xs(PhotonChannel.PI_PI0_RHO, s, m_rho)

    def xs_pi_rho0_pi(self, s: float, m_rho: float) -> float:
        return self.xs(PhotonChannel.PI_RHO0_PI, s, m_rho)

    def xs_pi_rho_pi0(self, s: float, m_rho: float) -> float:
        return self.xs(PhotonChannel.PI_RHO_PI0, s, m_rho)

    def xs_pi0_rho_pi(self, s: float, m_rho: float) -> float:
        return self.xs(PhotonChannel.PI0_RHO_PI, s, m_rho)

    def xs_diff_pi_pi_rho0(self, s: float, t: float, m_rho: float) -> float:
        return self.xs_diff(PhotonChannel.PI_PI_RHO0, s, t, m_rho)

    def xs_diff_pi_pi0_rho(self, s: float, t: float, m_rho: float) -> float:
        return self.xs_diff(PhotonChannel.PI_PI0_RHO, s, t, m_rho)

    def xs_diff_pi_rho0_pi(self, s: float, t: float, m_rho: float) -> float:
        return self.xs_diff(PhotonChannel.PI_RHO0_PI, s, t, m_rho)

    def xs_diff_pi_rho_pi0(self, s: float, t: float, m_rho: float) -> float:
        return self.xs_diff(PhotonChannel.PI_RHO_PI0, s, t, m_rho)

    def xs_diff_pi0_rho_pi(self, s: float, t: float, m_rho: float) -> float:
        return self.xs_diff(PhotonChannel.PI0_RHO_PI, s, t, m_rho)
