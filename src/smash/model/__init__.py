"""Data model: four-vectors, particle species, particle state and the particle registry."""

from smash.model.fourvector import FourVector, ThreeVector
from smash.model.particledata import INVALID_INDEX, HistoryData, ParticleData, ParticleList
from smash.model.particles import (
    EmptyParticlesError,
    Particles,
    ParticlesError,
    ParticleTypeMismatchError,
    StaleParticleError,
)
from smash.model.particletype import DecayBranch, ParticleType, resolve_species
from smash.model.processtype import ProcessType, is_string_soft_process

__all__ = [
    "INVALID_INDEX",
    "DecayBranch",
    "EmptyParticlesError",
    "FourVector",
    "HistoryData",
    "ParticleData",
    "ParticleList",
    "ParticleType",
    "ParticleTypeMismatchError",
    "Particles",
    "ParticlesError",
    "ProcessType",
    "StaleParticleError",
    "ThreeVector",
    "is_string_soft_process",
    "resolve_species",
]
