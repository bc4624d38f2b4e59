"""Tests for the value types of the data model."""

from __future__ import annotations

import copy
import math

import pytest
from conftest import make_particle

from smash.model.fourvector import FourVector, ThreeVector
from smash.model.particledata import INVALID_INDEX, ParticleData
from smash.model.particletype import (
    ANTI_P,
    DELTA_P,
    P,
    PI_M,
    PI_P,
    PI_Z,
    RHO_Z,
    ParticleType,
    resolve_species,
)
from smash.model.processtype import ProcessType, is_string_soft_process, keeps_identity
from smash.physics.kinematics import get_t_range, pcm, pcm_sqr, sample_two_body


class TestFourVector:
    """Tests for FourVector arithmetic and boosts."""

    def test_minkowski_square(self) -> None:
        """The (+,-,-,-) metric is used."""
        v = FourVector(5.0, 1.0, 2.0, 3.0)
        assert v.sqr() == 25.0 - 14.0

    def test_abs_is_negative_for_spacelike(self) -> None:
        """Spacelike vectors report a negative invariant length."""
        assert FourVector(0.0, 3.0, 4.0, 0.0).abs() == -5.0

    def test_boost_gives_particle_velocity_minus_v(self) -> None:
        """A particle at rest moves with -v after boosting by v."""
        mass = 0.938
        boosted = FourVector(mass, 0.0, 0.0, 0.0).lorentz_boost(ThreeVector(0.6, 0.0, 0.0))
        assert boosted.x0 == pytest.approx(1.25 * mass)
        assert boosted.x1 == pytest.approx(-0.75 * mass)
        assert boosted.velocity().x1 == pytest.approx(-0.6)

    def test_boost_preserves_invariant(self) -> None:
        """Boosts leave the Minkowski square unchanged."""
        v = FourVector(2.0, 0.3, -0.4, 1.1)
        boosted = v.lorentz_boost(ThreeVector(0.2, 0.5, -0.3))
        assert boosted.sqr() == pytest.approx(v.sqr())

    def test_boost_there_and_back(self) -> None:
        """Boosting by v then -v returns the original vector."""
        v = FourVector(3.0, 1.0, 0.5, -0.2)
        beta = ThreeVector(0.1, -0.7, 0.3)
        assert v.lorentz_boost(beta).lorentz_boost(-beta).is_close(v, 1e-12)

    def test_superluminal_boost_rejected(self) -> None:
        """Boost velocities must stay below c."""
        with pytest.raises(ValueError, match="below c"):
            FourVector(1.0).lorentz_boost(ThreeVector(1.0, 0.0, 0.0))


class TestParticleType:
    """Tests for species lookup."""

    def test_find(self) -> None:
        """Registered species are found by PDG code."""
        pion = ParticleType.find(PI_P)
        assert pion.name == "pi+"
        assert pion.charge == 1
        assert not pion.is_baryon

    def test_find_unknown(self) -> None:
        """Unknown PDG codes raise KeyError; try_find returns None."""
        with pytest.raises(KeyError, match="Unknown PDG code"):
            ParticleType.find(12345)
        assert ParticleType.try_find(12345) is None

    @pytest.mark.parametrize("key", ["pi-", "-211", -211, " pi- "])
    def test_resolve_species(self, key: str | int) -> None:
        """Species resolve from names, PDG numbers and numeric strings."""
        assert resolve_species(key).pdgcode == PI_M

    def test_resolve_unknown_name(self) -> None:
        """Unknown names raise KeyError."""
        with pytest.raises(KeyError, match="Unknown particle name"):
            resolve_species("quark")

    def test_antiparticle_sign(self) -> None:
        """Antibaryons get -1, everything else +1."""
        assert ParticleType.find(ANTI_P).antiparticle_sign() == -1
        assert ParticleType.find(P).antiparticle_sign() == 1
        assert ParticleType.find(PI_Z).antiparticle_sign() == 1

    def test_stability(self) -> None:
        """Species with a width and decay modes are unstable."""
        assert ParticleType.find(P).is_stable
        assert not ParticleType.find(RHO_Z).is_stable
        assert not ParticleType.find(DELTA_P).is_stable

    def test_breit_wigner_peak(self) -> None:
        """The spectral function peaks at the pole with height 2/(pi Gamma)."""
        delta = ParticleType.find(DELTA_P)
        assert delta.breit_wigner(delta.mass) == pytest.approx(2.0 / (math.pi * delta.width))
        assert delta.breit_wigner(delta.mass + 0.2) < delta.breit_wigner(delta.mass)
        assert ParticleType.find(P).breit_wigner(0.938) == 0.0

    def test_decay_modes_conserve_charge(self) -> None:
        """Every decay branch conserves electric charge."""
        for ptype in ParticleType.list_all():
            for mode in ptype.decay_modes:
                assert sum(t.charge for t in mode.types()) == ptype.charge


class TestParticleData:
    """Tests for ParticleData state handling."""

    def test_defaults(self) -> None:
        """A new particle has no id, no slot and no history."""
        p = ParticleData(ParticleType.find(P))
        assert p.id == -1
        assert p.index == INVALID_INDEX
        assert p.id_process == 0
        assert not p.hole

    def test_set_4momentum_components(self) -> None:
        """The energy is set on shell."""
        p = make_particle(PI_P)
        p.set_4momentum(0.5, 0.3, 0.0, 0.4)
        assert p.momentum.x0 == pytest.approx(math.sqrt(0.25 + 0.25))
        assert p.effective_mass == pytest.approx(0.5)

    def test_set_4momentum_threevector(self) -> None:
        """A ThreeVector is accepted as well."""
        p = make_particle(PI_P)
        p.set_4momentum(0.1396, ThreeVector(0.0, 0.2, 0.0))
        assert p.momentum.x2 == 0.2

    def test_set_4momentum_bad_arguments(self) -> None:
        """Two loose components are rejected."""
        p = make_particle(PI_P)
        with pytest.raises(TypeError):
            p.set_4momentum(0.1396, 0.1, 0.2)

    def test_set_history(self) -> None:
        """set_history records the process and counts collisions."""
        parent_a = make_particle(PI_P)
        parent_b = make_particle(PI_M)
        p = make_particle(RHO_Z)
        p.set_history(7, ProcessType.TWO_TO_ONE, 1.5, [parent_a, parent_b])
        p.set_history(9, ProcessType.ELASTIC, 2.0, [p])
        assert p.id_process == 9
        assert p.history.collisions_per_particle == 2
        assert p.history.process_type == ProcessType.ELASTIC
        assert p.history.time_last_collision == 2.0
        assert p.history.parent_pdgs == (RHO_Z,)

    def test_wall_crossing_is_not_a_collision(self) -> None:
        """A box wrap renews id_process but leaves the collision record alone."""
        p = make_particle(PI_P)
        p.set_history(4, ProcessType.ELASTIC, 1.5, [p, make_particle(PI_M)])
        p.set_history(5, ProcessType.WALL, 2.5, [p])
        assert p.id_process == 5
        assert p.history.process_type == ProcessType.WALL
        assert p.history.collisions_per_particle == 1
        assert p.history.time_last_collision == 1.5
        assert p.history.parent_pdgs == (PI_P, PI_M)

    def test_copy_to_keeps_bookkeeping(self) -> None:
        """copy_to() moves kinematics and history but not id, index or type."""
        source = make_particle(PI_P, position=(1.0, 2.0, 3.0, 4.0), momentum=(0.1, 0.0, 0.0))
        source.set_id_process(4)
        dest = make_particle(PI_M)
        dest.id = 11
        dest.index = 3
        source.copy_to(dest)
        assert dest.id == 11
        assert dest.index == 3
        assert dest.type.pdgcode == PI_M
        assert dest.id_process == 4
        assert dest.position == source.position
        assert dest.momentum == source.momentum

    def test_equality(self) -> None:
        """Equality compares id, species and kinematics, not history."""
        a = make_particle(PI_P, momentum=(0.1, 0.0, 0.0))
        b = copy.copy(a)
        b.set_id_process(5)
        assert a == b
        b.position = FourVector(1.0, 0.0, 0.0, 0.0)
        assert a != b
        c = copy.copy(a)
        c.id = 3
        assert a != c


class TestProcessType:
    """Tests for process type helpers."""

    def test_string_soft(self) -> None:
        """Only soft string processes are flagged."""
        assert is_string_soft_process(ProcessType.STRING_SOFT)
        assert not is_string_soft_process(ProcessType.STRING_HARD)
        assert not is_string_soft_process(ProcessType.ELASTIC)

    @pytest.mark.parametrize(
        ("process_type", "expected"),
        [
            (ProcessType.ELASTIC, True),
            (ProcessType.WALL, True),
            (ProcessType.TWO_TO_ONE, False),
            (ProcessType.TWO_TO_TWO, False),
            (ProcessType.DECAY, False),
            (ProcessType.STRING_SOFT, False),
        ],
    )
    def test_keeps_identity(self, process_type: ProcessType, expected: bool) -> None:
        """Elastic and wall processes update in place."""
        assert keeps_identity(process_type) is expected


class TestKinematics:
    """Tests for two-body kinematics helpers."""

    def test_pcm_below_threshold(self) -> None:
        """Below threshold the squared momentum is negative and pcm is 0."""
        assert pcm_sqr(0.2, 0.1396, 0.1396) < 0.0
        assert pcm(0.2, 0.1396, 0.1396) == 0.0

    def test_pcm_equal_masses(self) -> None:
        """For equal masses p = sqrt(s/4 - m^2)."""
        assert pcm(1.0, 0.3, 0.3) == pytest.approx(math.sqrt(0.25 - 0.09))

    def test_t_range_elastic(self) -> None:
        """Elastic t runs from -4 p^2 to 0."""
        srts = 2.0
        t_min, t_max = get_t_range(srts, 0.938, 0.938, 0.938, 0.938)
        p = pcm(srts, 0.938, 0.938)
        assert t_max == pytest.approx(0.0)
        assert t_min == pytest.approx(-4.0 * p * p)

    def test_sample_two_body(self, rng) -> None:
        """The sampled momenta are back to back and share sqrt(s)."""
        a, b = sample_two_body(1.0, 0.1396, 0.135, rng)
        total = a + b
        assert total.threevec.abs() == pytest.approx(0.0, abs=1e-12)
        assert total.x0 == pytest.approx(1.0)
        assert a.abs() == pytest.approx(0.1396)

    def test_sample_two_body_below_threshold(self, rng) -> None:
        """Sampling below threshold raises ValueError."""
        with pytest.raises(ValueError, match="below threshold"):
            sample_two_body(0.2, 0.1396, 0.1396, rng)
