"""Physics inputs: kinematics, mean-field potentials and photon cross sections."""

from smash.physics.kinematics import (
    FM2_MB,
    GEV2_MB,
    HBARC,
    get_t_range,
    pcm,
    pcm_sqr,
    sample_isotropic_direction,
    sample_two_body,
)
from smash.physics.photoncrosssections import ComputationMethod, PhotonChannel, PhotonCrossSection
from smash.physics.potentials import NUCLEAR_DENSITY, DensityType, Potentials, eckart_density

__all__ = [
    "FM2_MB",
    "GEV2_MB",
    "HBARC",
    "NUCLEAR_DENSITY",
    "ComputationMethod",
    "DensityType",
    "PhotonChannel",
    "PhotonCrossSection",
    "Potentials",
    "eckart_density",
    "get_t_range",
    "pcm",
    "pcm_sqr",
    "sample_isotropic_direction",
    "sample_two_body",
]
