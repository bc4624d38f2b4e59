"""Propagation between actions: free streaming, mean-field kicks and box wrapping.

Propagation changes kinematics of live entries in place while iterating the
registry. It never changes ids or id_process, so copies held by pending
actions stay valid and pick up the new kinematics via ``update_incoming``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smash.actions.wallcrossing import WallCrossingAction
from smash.model.fourvector import FourVector

if TYPE_CHECKING:
    from smash.model.particles import Particles
    from smash.physics.potentials import Potentials

logger = logging.getLogger(__name__)


def propagate_straight_line(particles: Particles, to_time: float) -> None:
    """Move every particle along its velocity up to ``to_time``."""
    for p in particles:
        dt = to_time - p.position.x0
        if dt <= 0.0:
            continue
        v = p.velocity()
        p.position = p.position + FourVector(dt, v.x1 * dt, v.x2 * dt, v.x3 * dt)


def update_momenta(particles: Particles, dt: float, potentials: Potentials) -> int:
    """Kick baryon momenta by -grad U * dt, keeping them on their mass shell.

    All gradients are evaluated on one snapshot taken before any kick.

    Returns:
        Number of particles whose momentum changed.
    """
    snapshot = particles.copy_to_vector()
    kicked = 0
    for p in particles:
        if not p.type.is_baryon:
            continue
        gradient = potentials.potential_gradient(p.position.threevec, snapshot, p.type)
        if gradient.sqr() == 0.0:
            continue
        p.set_4momentum(p.effective_mass, p.momentum.threevec - gradient * dt)
        kicked += 1
    return kicked


def _wrap(x: float, length: float) -> float:
    wrapped = x % length
    # x % length can round up to length for tiny negative x
    return 0.0 if wrapped >= length else wrapped


def find_wall_crossings(particles: Particles, box_length: float) -> list[WallCrossingAction]:
    """Actions moving every particle outside [0, box_length)^3 to its periodic image."""
    actions = []
    for p in particles.copy_to_vector():
        pos = p.position
        if all(0.0 <= x < box_length for x in (pos.x1, pos.x2, pos.x3)):
            continue
        new_position = FourVector(
            pos.x0, _wrap(pos.x1, box_length), _wrap(pos.x2, box_length), _wrap(pos.x3, box_length)
        )
        actions.append(WallCrossingAction(p, new_position, pos.x0))
    return actions
