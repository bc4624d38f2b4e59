"""Relativistic kinematics helpers for two-body processes."""

from __future__ import annotations

import math
import random

from smash.model.fourvector import FourVector, ThreeVector

# hbar * c in GeV fm
HBARC = 0.197327
# 1 mb = 0.1 fm^2
FM2_MB = 0.1
# GeV^-2 to mb
GEV2_MB = 0.3894
REALLY_SMALL = 1.0e-6


def pcm_sqr(srts: float, m1: float, m2: float) -> float:
    """Squared centre-of-mass momentum for two particles at sqrt(s); negative below threshold."""
    s = srts * srts
    return (s - (m1 + m2) ** 2) * (s - (m1 - m2) ** 2) / (4.0 * s)


def pcm(srts: float, m1: float, m2: float) -> float:
    """Centre-of-mass momentum for two particles at sqrt(s), 0 below threshold."""
    return math.sqrt(max(0.0, pcm_sqr(srts, m1, m2)))


def plab_from_s(s: float, m_projectile: float, m_target: float) -> float:
    """Projectile momentum in the rest frame of the target."""
    radicand = (s - (m_projectile + m_target) ** 2) * (s - (m_projectile - m_target) ** 2)
    if radicand <= 0.0:
        return 0.0
    return math.sqrt(radicand) / (2.0 * m_target)


def get_t_range(srts: float, m1: float, m2: float, m3: float, m4: float) -> tuple[float, float]:
    """Kinematically allowed Mandelstam t for 1 + 2 -> 3 + 4, as (t_min, t_max)."""
    s = srts * srts
    p_in = pcm(srts, m1, m2)
    p_out = pcm(srts, m3, m4)
    offset = (m1 * m1 - m3 * m3 - m2 * m2 + m4 * m4) ** 2 / (4.0 * s)
    t_max = offset - (p_in - p_out) ** 2
    t_min = offset - (p_in + p_out) ** 2
    return t_min, t_max


def sample_isotropic_direction(rng: random.Random | None = None) -> ThreeVector:
    """Unit vector distributed uniformly on the sphere."""
    rng = rng or random
    cos_theta = rng.uniform(-1.0, 1.0)
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    phi = rng.uniform(0.0, 2.0 * math.pi)
    return ThreeVector(sin_theta * math.cos(phi), sin_theta * math.sin(phi), cos_theta)


def sample_two_body(
    srts: float,
    m1: float,
    m2: float,
    rng: random.Random | None = None,
) -> tuple[FourVector, FourVector]:
    """Back-to-back momenta of an isotropic two-body final state in its rest frame.

    Raises:
        ValueError: If sqrt(s) is below the threshold m1 + m2.
    """
    if srts < m1 + m2:
        raise ValueError(f"sqrt(s) = {srts:.4f} GeV below threshold {m1 + m2:.4f} GeV")
    momentum = pcm(srts, m1, m2)
    direction = sample_isotropic_direction(rng) * momentum
    e1 = math.sqrt(m1 * m1 + momentum * momentum)
    e2 = math.sqrt(m2 * m2 + momentum * momentum)
    return FourVector.from_threevec(e1, direction), FourVector.from_threevec(e2, -direction)
