"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

import logging
import random

import pytest

from smash.model.fourvector import FourVector
from smash.model.particledata import ParticleData
from smash.model.particles import Particles
from smash.model.particletype import PI_P, ParticleType


def make_particle(
    pdg: int = PI_P,
    position: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0),
    momentum: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> ParticleData:
    """Build an on-shell particle of species ``pdg``.

    ``momentum`` is the 3-momentum in GeV; the energy follows from the pole
    mass.
    """
    ptype = ParticleType.find(pdg)
    p = ParticleData(ptype, position=FourVector(*position))
    p.set_4momentum(ptype.mass, *momentum)
    return p


@pytest.fixture
def particles() -> Particles:
    """Empty registry with validity checks switched on."""
    return Particles()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random generator."""
    return random.Random(42)


@pytest.fixture
def restore_logging():
    """Put the smash and uvicorn.access loggers back after configure_logging()."""
    saved = {}
    for name in ("smash", "uvicorn.access"):
        target = logging.getLogger(name)
        saved[name] = (list(target.handlers), target.level, target.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        target = logging.getLogger(name)
        target.handlers[:] = handlers
        target.setLevel(level)
        target.propagate = propagate
