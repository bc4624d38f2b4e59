"""Configuration loading for experiments.

Settings come from ``SMASH_*`` environment variables and an optional ``.env``
file and are validated by pydantic. Nested settings (potentials) use the
``__`` delimiter, e.g. ``SMASH_POTENTIALS__USE_SKYRME=true``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_PARTICLES: dict[str, int] = {
    "pi+": 20,
    "pi-": 20,
    "pi0": 20,
    "p": 10,
    "n": 10,
}


@dataclass(frozen=True)
class ExperimentParameters:
    """Fixed numerical parameters shared by the physics modules of one experiment."""

    time_step: float
    testparticles: int
    gaussian_sigma: float
    gauss_cutoff_in_sigma: float


class PotentialsConfig(BaseModel):
    """Mean-field potential settings.

    Skyrme coefficients and the symmetry energy are given in MeV, the same
    units the physics literature quotes them in.
    """

    use_skyrme: bool = Field(default=True, description="Enable the Skyrme potential")
    skyrme_a: float = Field(default=-209.2, description="Skyrme A coefficient (MeV)")
    skyrme_b: float = Field(default=156.4, description="Skyrme B coefficient (MeV)")
    skyrme_tau: float = Field(default=1.35, gt=1.0, description="Skyrme exponent")
    use_symmetry: bool = Field(default=False, description="Enable the symmetry potential")
    symmetry_s: float = Field(default=18.0, description="Symmetry energy S_pot (MeV)")


class SimulationConfig(BaseSettings):
    """Configuration for one transport experiment.

    Environment Variables:
        SMASH_TIME_STEP: Time step in fm (default: 0.1)
        SMASH_END_TIME: End of the evolution in fm (default: 10.0)
        SMASH_BOX_LENGTH: Edge length of the periodic box in fm (default: 10.0)
        SMASH_TEMPERATURE: Initial temperature in GeV (default: 0.15)
        SMASH_INITIAL_PARTICLES: JSON object species -> count
        SMASH_ELASTIC_PARAMETER: Constant elastic cross section in mb (default: 10.0)
        SMASH_TWO_TO_ONE: Enable resonance formation (default: true)
        SMASH_STRINGS: Enable string excitation (default: false)
        SMASH_DECAYS: Enable resonance decays (default: true)
        SMASH_USE_POTENTIALS: Enable the mean-field propagation (default: false)
        SMASH_VALIDATE_COPIES: Check particle copies on every commit (default: true)
        SMASH_MAXIMUM_CROSS_SECTION: Cut-off for cross sections in mb (default: 200.0)
        SMASH_SEED: Random seed (default: unset, random)

    Example:
        >>> config = SimulationConfig(time_step=0.05, seed=42)
    """

    model_config = SettingsConfigDict(
        env_prefix="SMASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Clock
    time_step: float = Field(default=0.1, gt=0.0, le=10.0, description="Time step (fm)")
    end_time: float = Field(default=10.0, ge=0.0, description="End time (fm)")

    # Initial state
    box_length: float = Field(default=10.0, gt=0.0, description="Box edge length (fm)")
    temperature: float = Field(default=0.15, gt=0.0, le=1.0, description="Temperature (GeV)")
    initial_particles: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_INITIAL_PARTICLES),
        description="Initial multiplicities keyed by species name or PDG code",
    )
    testparticles: int = Field(default=1, ge=1, description="Test particles per particle")

    # Interactions
    elastic_parameter: float = Field(
        default=10.0,
        ge=0.0,
        description="Constant elastic cross section (mb), 0 disables elastic scattering",
    )
    two_to_one: bool = Field(default=True, description="Enable resonance formation")
    strings: bool = Field(default=False, description="Enable soft string excitation")
    decays: bool = Field(default=True, description="Enable resonance decays")
    maximum_cross_section: float = Field(
        default=200.0,
        gt=0.0,
        description="Upper bound for any cross section (mb)",
    )

    # Mean field
    use_potentials: bool = Field(default=False, description="Enable mean-field potentials")
    potentials: PotentialsConfig = Field(default_factory=PotentialsConfig)
    gaussian_sigma: float = Field(default=1.0, gt=0.0, description="Smearing width (fm)")
    gauss_cutoff_in_sigma: float = Field(
        default=4.0,
        gt=0.0,
        description="Smearing cut-off in units of sigma",
    )

    # Bookkeeping
    validate_copies: bool = Field(
        default=True,
        description="Raise on stale particle copies instead of trusting the caller",
    )
    seed: int | None = Field(default=None, description="Random seed")

    @field_validator("initial_particles")
    @classmethod
    def check_multiplicities(cls, v: dict[str, int]) -> dict[str, int]:
        """Reject negative multiplicities."""
        for species, count in v.items():
            if count < 0:
                raise ValueError(f"Negative multiplicity {count} for species '{species}'")
        return v

    def experiment_parameters(self) -> ExperimentParameters:
        """Derive the fixed parameters handed to the physics modules."""
        return ExperimentParameters(
            time_step=self.time_step,
            testparticles=self.testparticles,
            gaussian_sigma=self.gaussian_sigma,
            gauss_cutoff_in_sigma=self.gauss_cutoff_in_sigma,
        )

    def summary(self) -> dict[str, Any]:
        """Compact view of the settings, used for the start-of-run log line."""
        return {
            "time_step": self.time_step,
            "end_time": self.end_time,
            "box_length": self.box_length,
            "particles": sum(self.initial_particles.values()),
            "elastic_parameter": self.elastic_parameter,
            "two_to_one": self.two_to_one,
            "strings": self.strings,
            "potentials": self.use_potentials,
            "seed": self.seed,
        }


@lru_cache
def get_config() -> SimulationConfig:
    """Get cached configuration singleton.

    Loads configuration once and caches it for subsequent calls.
    To reload configuration, call get_config.cache_clear() first.

    Returns:
        SimulationConfig instance with settings from environment.
    """
    config = SimulationConfig()
    logger.info("Loaded simulation configuration: %s", config.summary())
    return config
