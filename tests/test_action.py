"""Tests for the Action base class and wall crossings."""

from __future__ import annotations

import pytest
from conftest import make_particle

from smash.actions.action import CONSERVATION_TOLERANCE, Action, ActionError
from smash.actions.wallcrossing import WallCrossingAction
from smash.model.fourvector import FourVector
from smash.model.particles import Particles, StaleParticleError
from smash.model.particletype import PI_M, PI_P, PI_Z, RHO_Z, ParticleType
from smash.model.processtype import ProcessType


class _FixedAction(Action):
    """Action whose final state is handed in by the test."""

    def __init__(self, incoming, time, outgoing, process_type=ProcessType.TWO_TO_TWO):
        super().__init__(incoming, time, process_type)
        self._prepared = outgoing

    def generate_final_state(self) -> None:
        self._outgoing = list(self._prepared)


class TestActionBasics:
    """Tests for ordering and derived quantities."""

    def test_sorting_by_time(self) -> None:
        """Actions order by their execution time."""
        p = make_particle()
        actions = [_FixedAction([p], t, []) for t in (3.0, 1.0, 2.0)]
        assert [a.time_of_execution for a in sorted(actions)] == [1.0, 2.0, 3.0]

    def test_interaction_point_is_mean_position(self) -> None:
        """The interaction point lies halfway between two particles."""
        a = make_particle(position=(1.0, -1.0, 2.0, 0.0))
        b = make_particle(position=(1.0, 1.0, 0.0, 4.0))
        act = _FixedAction([a, b], 1.0, [])
        assert act.get_interaction_point() == FourVector(1.0, 0.0, 1.0, 2.0)

    def test_incoming_are_copies(self) -> None:
        """Changing the caller's particle does not change the action."""
        p = make_particle()
        act = _FixedAction([p], 0.0, [])
        p.position = FourVector(9.0, 9.0, 9.0, 9.0)
        assert act.incoming_particles[0].position == FourVector()

    def test_sqrt_s(self) -> None:
        """sqrt(s) of two particles at rest is the sum of their masses."""
        a = make_particle(PI_P)
        b = make_particle(PI_M)
        act = _FixedAction([a, b], 0.0, [])
        assert act.sqrt_s() == pytest.approx(2 * 0.1396)

    def test_repr(self) -> None:
        """repr() names the class, the process and the incoming species."""
        act = _FixedAction([make_particle(PI_P)], 0.5, [])
        assert "_FixedAction(TWO_TO_TWO" in repr(act)
        assert "pi+" in repr(act)


class TestPerform:
    """Tests for committing actions."""

    def test_perform_requires_final_state(self, particles: Particles) -> None:
        """perform() before generate_final_state() is an error."""
        p = particles.insert(make_particle())
        act = _FixedAction([p], 0.0, [])
        with pytest.raises(ActionError, match="before generate_final_state"):
            act.perform(particles, 1)

    def test_perform_sets_history(self, particles: Particles) -> None:
        """Outgoing particles carry the process id, type and parents."""
        a = particles.insert(make_particle(PI_P))
        b = particles.insert(make_particle(PI_M))
        rho = make_particle(RHO_Z)
        rho.momentum = a.momentum + b.momentum
        act = _FixedAction([a, b], 0.7, [rho], ProcessType.TWO_TO_ONE)
        act.generate_final_state()
        act.perform(particles, 12)

        stored = particles.front()
        assert stored.type == ParticleType.find(RHO_Z)
        assert stored.id_process == 12
        assert stored.history.process_type == ProcessType.TWO_TO_ONE
        assert stored.history.time_last_collision == 0.7
        assert stored.history.parent_pdgs == (PI_P, PI_M)
        assert particles.is_valid(act.outgoing_particles[0])
        assert not act.is_valid(particles)

    def test_perform_with_stale_incoming(self, particles: Particles) -> None:
        """A stale incoming copy makes perform() raise."""
        a = particles.insert(make_particle())
        particles.insert(make_particle())
        act = _FixedAction([a], 0.0, [make_particle(PI_Z)])
        act.generate_final_state()
        particles.remove(a)
        assert not act.is_valid(particles)
        with pytest.raises(StaleParticleError):
            act.perform(particles, 1)

    def test_update_incoming_refreshes_kinematics(self, particles: Particles) -> None:
        """update_incoming() picks up in-place propagation."""
        a = particles.insert(make_particle(momentum=(0.1, 0.0, 0.0)))
        act = _FixedAction([a], 1.0, [])
        for live in particles:
            live.position = FourVector(1.0, 0.5, 0.0, 0.0)
        act.update_incoming(particles)
        assert act.incoming_particles[0].position == FourVector(1.0, 0.5, 0.0, 0.0)
        assert act.is_valid(particles)


class TestConservation:
    """Tests for check_conservation."""

    def test_conserved(self) -> None:
        """Equal totals give an empty report."""
        a = make_particle(PI_P, momentum=(0.1, 0.0, 0.0))
        act = _FixedAction([a], 0.0, [a])
        act.generate_final_state()
        assert act.check_conservation(1) == ""

    def test_charge_violation(self) -> None:
        """A charge mismatch is reported."""
        a = make_particle(PI_P)
        b = make_particle(PI_M)
        b.momentum = a.momentum
        act = _FixedAction([a], 0.0, [b])
        act.generate_final_state()
        message = act.check_conservation(4)
        assert "charge 1 -> -1" in message
        assert "process #4" in message

    def test_momentum_violation(self) -> None:
        """Momentum differences beyond the tolerance are reported."""
        a = make_particle(PI_P)
        b = make_particle(PI_P, momentum=(10 * CONSERVATION_TOLERANCE, 0.0, 0.0))
        act = _FixedAction([a], 0.0, [b])
        act.generate_final_state()
        assert "4-momentum" in act.check_conservation(1)

    def test_soft_strings_skip_momentum_check(self) -> None:
        """Soft string processes are only checked for charge."""
        a = make_particle(PI_P)
        b = make_particle(PI_P, momentum=(0.5, 0.0, 0.0))
        act = _FixedAction([a], 0.0, [b], ProcessType.STRING_SOFT)
        act.generate_final_state()
        assert act.check_conservation(1) == ""


class TestWallCrossing:
    """Tests for WallCrossingAction."""

    def test_moves_particle_in_place(self, particles: Particles) -> None:
        """The particle keeps its id and slot but old copies go stale."""
        p = particles.insert(make_particle(PI_Z, position=(1.0, 10.2, 0.0, 0.0)))
        new_position = FourVector(1.0, 0.2, 0.0, 0.0)
        act = WallCrossingAction(p, new_position, 1.0)
        act.generate_final_state()
        act.perform(particles, 3)

        moved = act.outgoing_particles[0]
        assert act.process_type == ProcessType.WALL
        assert moved.id == p.id
        assert moved.index == p.index
        assert particles.front().position == new_position
        assert particles.front().momentum == p.momentum
        assert particles.front().id_process == 3
        assert particles.front().history.collisions_per_particle == 0
        assert not particles.is_valid(p)
