"""Tests for DecayAction."""

from __future__ import annotations

import random

import pytest
from conftest import make_particle

from smash.actions.action import ActionError
from smash.actions.decayaction import DecayAction
from smash.model.particles import Particles
from smash.model.particletype import (
    DELTA_P,
    DELTA_PP,
    P,
    PI_M,
    PI_P,
    PI_Z,
    RHO_Z,
    DecayBranch,
    ParticleType,
)
from smash.model.processtype import ProcessType


class TestChannels:
    """Tests for adding decay channels."""

    def test_add_decays_sums_weights(self) -> None:
        """The total width is the sum of the channel weights."""
        delta = ParticleType.find(DELTA_P)
        act = DecayAction(make_particle(DELTA_P), 0.0)
        act.add_decays(delta.decay_modes)
        assert act.total_width == pytest.approx(1.0)

    def test_three_body_rejected(self) -> None:
        """Only two-body decays are supported."""
        act = DecayAction(make_particle(RHO_Z), 0.0)
        with pytest.raises(ActionError, match="two-body"):
            act.add_decay(DecayBranch(1.0, (PI_P, PI_M, PI_Z)))

    def test_zero_weight_ignored(self) -> None:
        """Channels without weight are skipped."""
        act = DecayAction(make_particle(RHO_Z), 0.0)
        act.add_decay(DecayBranch(0.0, (PI_P, PI_M)))
        assert act.total_width == 0.0
        with pytest.raises(ActionError, match="No decay channels"):
            act.generate_final_state()


class TestFinalState:
    """Tests for the generated products."""

    @pytest.mark.parametrize("seed", range(5))
    def test_moving_rho_conserves_momentum(self, seed: int) -> None:
        """The products carry the parent's four-momentum."""
        rho = make_particle(RHO_Z, position=(1.0, 0.5, 0.5, 0.5), momentum=(0.3, -0.2, 0.6))
        act = DecayAction(rho, 1.2, rng=random.Random(seed))
        act.add_decays(rho.type.decay_modes)
        act.generate_final_state()

        first, second = act.outgoing_particles
        assert {first.pdgcode, second.pdgcode} == {PI_P, PI_M}
        assert act.total_momentum_of_outgoing_particles().is_close(rho.momentum, 1e-9)
        assert first.effective_mass == pytest.approx(0.1396)
        assert first.position == rho.position
        assert act.check_conservation(1) == ""

    def test_parent_too_light(self) -> None:
        """A parent below the product threshold cannot decay."""
        rho = make_particle(RHO_Z)
        rho.set_4momentum(0.2, 0.0, 0.0, 0.0)
        act = DecayAction(rho, 0.0)
        act.add_decays(rho.type.decay_modes)
        with pytest.raises(ActionError, match="cannot decay"):
            act.generate_final_state()


class TestPerform:
    """Tests for committing decays to the registry."""

    def test_one_to_two_replacement(self, particles: Particles) -> None:
        """The first product takes the parent's slot, the second a new one."""
        particles.insert(make_particle(P))
        delta = particles.insert(make_particle(DELTA_PP))
        act = DecayAction(delta, 0.3, rng=random.Random(4))
        act.add_decays(delta.type.decay_modes)
        act.generate_final_state()
        act.perform(particles, 7)

        first, second = act.outgoing_particles
        assert act.process_type == ProcessType.DECAY
        assert first.index == delta.index
        assert second.index == 2
        assert first.id > delta.id
        assert second.id > first.id
        assert len(particles) == 3
        assert not particles.is_valid(delta)
        assert particles.is_valid(first)
        assert particles.is_valid(second)
        assert first.id_process == 7
        assert first.history.parent_pdgs == (DELTA_PP,)
        assert sum(p.type.charge for p in particles) == 3
