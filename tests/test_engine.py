"""Tests for the experiment, the time-step loop and propagation."""

from __future__ import annotations

import random
import statistics

import pytest
from conftest import make_particle

from smash.actions.scatteraction import ScatterAction
from smash.config import SimulationConfig
from smash.engine.experiment import Experiment, ExperimentStats
from smash.engine.initial_conditions import create_box_particles, sample_thermal_momentum
from smash.engine.propagation import find_wall_crossings, propagate_straight_line, update_momenta
from smash.engine.simulation import _perform_if_valid, run_time_step
from smash.model.fourvector import FourVector
from smash.model.particles import Particles
from smash.model.particletype import N, P, PI_M, PI_P
from smash.model.processtype import ProcessType


def _config(**overrides) -> SimulationConfig:
    settings = {
        "initial_particles": {"pi+": 6, "pi-": 6, "pi0": 6, "p": 4, "n": 4},
        "box_length": 5.0,
        "end_time": 2.0,
        "seed": 42,
    }
    settings.update(overrides)
    return SimulationConfig(_env_file=None, **settings)


@pytest.fixture
def experiment() -> Experiment:
    exp = Experiment(_config())
    exp.initialize()
    return exp


class TestInitialConditions:
    """Tests for filling the box."""

    def test_counts(self, experiment: Experiment) -> None:
        """Every configured species is present in the requested number."""
        assert len(experiment.particles) == 26
        assert experiment.multiplicities() == {"pi+": 6, "pi-": 6, "pi0": 6, "p": 4, "n": 4}

    def test_testparticles_multiply(self) -> None:
        """Each particle is represented by N test particles."""
        config = _config(initial_particles={"p": 3}, testparticles=4)
        particles = Particles()
        assert create_box_particles(particles, config, random.Random(1)) == 12

    def test_positions_inside_box(self, experiment: Experiment) -> None:
        """All particles start at t=0 inside the box and on shell."""
        for p in experiment.particles:
            assert p.position.x0 == 0.0
            assert all(0.0 <= x < 5.0 for x in (p.position.x1, p.position.x2, p.position.x3))
            assert p.effective_mass == pytest.approx(p.pole_mass)

    def test_ids_start_at_zero(self, experiment: Experiment) -> None:
        """Ids are consecutive from 0."""
        assert [p.id for p in experiment.particles] == list(range(26))

    def test_unknown_species(self) -> None:
        """Unknown species names raise KeyError."""
        config = _config(initial_particles={"quark": 1})
        with pytest.raises(KeyError):
            create_box_particles(Particles(), config, random.Random(1))

    def test_pdg_codes_accepted(self) -> None:
        """Species may be given by PDG code."""
        particles = Particles()
        create_box_particles(particles, _config(initial_particles={"2212": 2}), random.Random(1))
        assert [p.pdgcode for p in particles] == [P, P]

    def test_thermal_kinetic_energy(self) -> None:
        """Heavy particles get 3/2 T of kinetic energy plus the first relativistic correction."""
        rng = random.Random(3)
        temperature = 0.1
        kinetic = []
        for _ in range(4000):
            momentum = sample_thermal_momentum(0.938, temperature, rng)
            kinetic.append((0.938**2 + momentum.sqr()) ** 0.5 - 0.938)
        expected = 1.5 * temperature + 15.0 * temperature**2 / (8.0 * 0.938)
        assert statistics.fmean(kinetic) == pytest.approx(expected, rel=0.05)


class TestExperiment:
    """Tests for running an experiment."""

    def test_conserved_quantities(self, experiment: Experiment) -> None:
        """Charge, baryon number and energy survive a run."""
        before = experiment.conserved_quantities()
        experiment.run()
        after = experiment.conserved_quantities()
        assert after["charge"] == before["charge"] == 4
        assert after["baryon_number"] == before["baryon_number"] == 8
        assert after["energy"] == pytest.approx(before["energy"], rel=1e-9)
        for a, b in zip(after["momentum"], before["momentum"], strict=True):
            assert a == pytest.approx(b, abs=1e-9)

    def test_run_advances_clock(self, experiment: Experiment) -> None:
        """run() stops at the configured end time."""
        stats = experiment.run()
        assert isinstance(stats, ExperimentStats)
        assert stats.steps == 20
        assert experiment.time == pytest.approx(2.0)

    def test_run_explicit_end_time(self, experiment: Experiment) -> None:
        """An explicit end time overrides the configured one."""
        experiment.run(end_time=0.5)
        assert experiment.stats.steps == 5

    def test_particles_stay_in_box(self, experiment: Experiment) -> None:
        """Wall crossings keep everything inside the periodic box."""
        experiment.run()
        for p in experiment.particles:
            assert all(0.0 <= x < 5.0 for x in (p.position.x1, p.position.x2, p.position.x3))

    def test_something_happens(self, experiment: Experiment) -> None:
        """A dense box sees collisions within a few fm."""
        stats = experiment.run(end_time=5.0)
        assert stats.total_performed() > 0
        assert experiment.id_process > 1

    def test_same_seed_same_history(self) -> None:
        """Runs with the same seed are reproducible."""
        results = []
        for _ in range(2):
            exp = Experiment(_config())
            exp.initialize()
            exp.run()
            results.append((exp.multiplicities(), exp.stats.to_dict(), exp.id_process))
        assert results[0] == results[1]

    def test_initialize_resets(self, experiment: Experiment) -> None:
        """Re-initializing restarts ids, process counter and clock."""
        experiment.run(end_time=1.0)
        experiment.initialize()
        assert experiment.time == 0.0
        assert experiment.id_process == 1
        assert experiment.stats.total_performed() == 0
        assert [p.id for p in experiment.particles] == list(range(26))

    def test_potentials_switched_on(self) -> None:
        """With potentials the nucleons still conserve baryon number."""
        exp = Experiment(_config(use_potentials=True, end_time=0.5))
        assert exp.potentials is not None
        exp.initialize()
        exp.run()
        assert exp.conserved_quantities()["baryon_number"] == 8

    def test_decays_switched_off(self) -> None:
        """Without decays there is no decay finder."""
        exp = Experiment(_config(decays=False))
        assert exp.decay_finder is None


class TestTimeStep:
    """Tests for the commit order inside one time step."""

    def _empty_experiment(self, **overrides) -> Experiment:
        settings = {
            "initial_particles": {},
            "box_length": 10.0,
            "time_step": 2.0,
            "two_to_one": False,
            "decays": False,
        }
        settings.update(overrides)
        exp = Experiment(_config(**settings))
        exp.initialize()
        return exp

    def test_stale_action_discarded(self) -> None:
        """The later of two collisions sharing a particle is dropped."""
        exp = self._empty_experiment()
        exp.particles.insert(
            make_particle(PI_P, position=(0.0, 4.0, 5.0, 5.0), momentum=(0.3, 0.0, 0.0))
        )
        exp.particles.insert(
            make_particle(PI_M, position=(0.0, 6.0, 5.0, 5.0), momentum=(-0.3, 0.0, 0.0))
        )
        exp.particles.insert(
            make_particle(PI_M, position=(0.0, 6.2, 5.0, 5.0), momentum=(-0.3, 0.0, 0.0))
        )
        performed = run_time_step(exp)
        assert performed == 1
        assert exp.stats.performed == {"ELASTIC": 1}
        assert exp.stats.discarded == 1
        assert exp.id_process == 2
        assert exp.time == 2.0

    def test_wall_crossing(self) -> None:
        """A particle leaving the box re-enters on the other side."""
        exp = self._empty_experiment(time_step=0.1)
        p = exp.particles.insert(
            make_particle(PI_P, position=(0.0, 9.95, 5.0, 5.0), momentum=(0.3, 0.0, 0.0))
        )
        run_time_step(exp)
        moved = exp.particles.front()
        assert moved.id == p.id
        assert 0.0 <= moved.position.x1 < 0.1
        assert moved.position.x0 == pytest.approx(0.1)
        assert moved.history.process_type == ProcessType.WALL
        assert exp.stats.wall_crossings == 1
        assert exp.id_process == 2

    def test_failed_final_state_counted(self) -> None:
        """Actions without a possible final state are counted and skipped."""
        exp = self._empty_experiment()
        a = exp.particles.insert(make_particle(PI_P, momentum=(0.3, 0.0, 0.0)))
        b = exp.particles.insert(make_particle(PI_M, position=(0.0, 1.0, 0.0, 0.0)))
        act = ScatterAction(a, b, 0.5)
        assert not _perform_if_valid(exp, act)
        assert exp.stats.failed == 1
        assert exp.id_process == 1


class TestPropagation:
    """Tests for free streaming and mean-field kicks."""

    def test_straight_line(self, particles: Particles) -> None:
        """Particles move with their velocity."""
        particles.insert(
            make_particle(P, position=(1.0, 0.0, 0.0, 0.0), momentum=(0.0, 0.938, 0.0))
        )
        propagate_straight_line(particles, 3.0)
        p = particles.front()
        assert p.position.x0 == 3.0
        assert p.position.x2 == pytest.approx(2.0 / 2**0.5)

    def test_never_backwards(self, particles: Particles) -> None:
        """Particles ahead of the target time stay where they are."""
        particles.insert(make_particle(position=(2.0, 1.0, 1.0, 1.0), momentum=(0.1, 0.0, 0.0)))
        propagate_straight_line(particles, 1.0)
        assert particles.front().position == FourVector(2.0, 1.0, 1.0, 1.0)

    def test_propagation_keeps_copies_valid(self, particles: Particles) -> None:
        """Propagation does not touch validity keys."""
        p = particles.insert(make_particle(momentum=(0.1, 0.0, 0.0)))
        propagate_straight_line(particles, 1.0)
        assert particles.is_valid(p)

    def test_update_momenta_kicks_baryons_only(self, particles: Particles) -> None:
        """Only baryons are kicked; masses stay on shell."""
        particles.insert(make_particle(P, position=(0.0, 0.0, 0.0, 0.0)))
        particles.insert(make_particle(N, position=(0.0, 0.8, 0.0, 0.0)))
        particles.insert(make_particle(PI_P, position=(0.0, 0.4, 0.0, 0.0)))
        exp = Experiment(_config(use_potentials=True))
        assert update_momenta(particles, 0.1, exp.potentials) == 2
        proton, neutron, pion = particles.copy_to_vector()
        assert proton.momentum.x1 != 0.0
        assert proton.momentum.x1 == pytest.approx(-neutron.momentum.x1)
        assert proton.effective_mass == pytest.approx(0.938)
        assert pion.momentum.threevec.abs() == 0.0

    def test_no_wall_crossings_inside(self, particles: Particles) -> None:
        """Particles inside the box need no crossing."""
        particles.insert(make_particle(position=(0.0, 1.0, 2.0, 3.0)))
        assert find_wall_crossings(particles, 5.0) == []

    def test_wall_crossings_wrap_all_axes(self, particles: Particles) -> None:
        """Positions outside the box are wrapped on every axis."""
        particles.insert(make_particle(position=(1.0, -0.5, 5.5, 2.0)))
        (crossing,) = find_wall_crossings(particles, 5.0)
        assert crossing.new_position == FourVector(1.0, 4.5, 0.5, 2.0)
