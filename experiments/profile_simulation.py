"""Profile run_time_step() and the particle registry to find bottlenecks."""

import cProfile
import pstats
import random
import time
from io import StringIO

from smash.config import SimulationConfig
from smash.engine.experiment import Experiment
from smash.model.fourvector import FourVector
from smash.model.particledata import ParticleData
from smash.model.particles import Particles
from smash.model.particletype import PI_Z, ParticleType


def create_test_experiment(multiplier: int = 1, **overrides) -> Experiment:
    """Create and initialize a box experiment with a fixed seed."""
    particles = {"pi+": 20 * multiplier, "pi-": 20 * multiplier, "pi0": 20 * multiplier}
    particles.update({"p": 10 * multiplier, "n": 10 * multiplier})
    config = SimulationConfig(seed=1234, initial_particles=particles, **overrides)
    experiment = Experiment(config)
    experiment.initialize()
    return experiment


def measure_step_rate(experiment: Experiment, num_steps: int) -> tuple[float, int]:
    """Measure steps per second and the maximum particle count."""
    start_time = time.perf_counter()
    max_particles = 0

    for _ in range(num_steps):
        experiment.run_time_step()
        max_particles = max(max_particles, len(experiment.particles))

    elapsed = time.perf_counter() - start_time
    steps_per_sec = num_steps / elapsed if elapsed > 0 else 0
    return steps_per_sec, max_particles


def profile_run_time_step(experiment: Experiment, num_steps: int) -> str:
    """Profile run_time_step and return profiling results."""
    profiler = cProfile.Profile()

    profiler.enable()
    for _ in range(num_steps):
        experiment.run_time_step()
    profiler.disable()

    # Get stats sorted by cumulative time
    stats_stream = StringIO()
    stats = pstats.Stats(profiler, stream=stats_stream)
    stats.sort_stats("cumulative")
    stats.print_stats(30)  # Top 30 functions

    return stats_stream.getvalue()


def churn_registry(num_particles: int, rounds: int) -> tuple[float, int, int]:
    """Random remove/insert churn on a bare registry.

    Returns operations per second, the final capacity and the final number
    of holes.
    """
    rng = random.Random(1234)
    particles = Particles()
    pi0 = ParticleType.find(PI_Z)
    particles.create_many(num_particles, PI_Z)

    start_time = time.perf_counter()
    operations = 0
    for _ in range(rounds):
        live = particles.copy_to_vector()
        for p in rng.sample(live, len(live) // 4):
            particles.remove(p)
            operations += 1
        for _ in range(len(live) // 4):
            particles.insert(ParticleData(pi0, momentum=FourVector(pi0.mass, 0.0, 0.0, 0.0)))
            operations += 1

    elapsed = time.perf_counter() - start_time
    ops_per_sec = operations / elapsed if elapsed > 0 else 0
    return ops_per_sec, particles.capacity, len(particles.free_slots)


def main():
    print("=" * 60)
    print("Performance Profiling: run_time_step()")
    print("=" * 60)

    # Warm-up run
    print("\nWarm-up run (10 steps)...")
    measure_step_rate(create_test_experiment(), 10)

    # Default box (80 particles)
    print("\n--- Default Box (100 steps) ---")
    experiment = create_test_experiment()
    steps_per_sec, max_particles = measure_step_rate(experiment, 100)
    print(f"Step rate: {steps_per_sec:.1f} steps/sec")
    print(f"Max particles: {max_particles}")
    print(f"Actions: {experiment.stats.to_dict()}")

    # Larger box population
    print("\n--- 4x Population (50 steps) ---")
    experiment = create_test_experiment(multiplier=4)
    steps_per_sec_large, max_particles_large = measure_step_rate(experiment, 50)
    print(f"Step rate: {steps_per_sec_large:.1f} steps/sec")
    print(f"Max particles: {max_particles_large}")

    # Mean field
    print("\n--- Potentials On (20 steps) ---")
    experiment = create_test_experiment(use_potentials=True)
    steps_per_sec_pot, _ = measure_step_rate(experiment, 20)
    print(f"Step rate with potentials: {steps_per_sec_pot:.1f} steps/sec")

    # Registry churn
    print("\n--- Registry Churn (1000 particles, 200 rounds) ---")
    ops_per_sec, capacity, holes = churn_registry(1000, 200)
    print(f"Registry operations: {ops_per_sec:.0f} ops/sec")
    print(f"Capacity after churn: {capacity}, holes: {holes}")

    # Profile detailed breakdown
    print("\n--- Profiling Breakdown (50 steps) ---")
    profile_results = profile_run_time_step(create_test_experiment(), 50)
    print(profile_results)

    # Final assessment
    print("\n" + "=" * 60)
    print("Performance Assessment")
    print("=" * 60)

    all_passed = True

    # Slots are reused: churn must not grow the storage
    if capacity <= 1000:
        print(f"✓ PASS: Storage stable under churn (capacity: {capacity})")
    else:
        print(f"✗ FAIL: Storage grew under churn (capacity: {capacity})")
        all_passed = False

    if steps_per_sec >= 10:
        print(f"✓ PASS: {steps_per_sec:.0f} steps/sec with the default box (target: 10)")
    else:
        print(f"✗ FAIL: {steps_per_sec:.0f} steps/sec (target: 10)")
        all_passed = False

    print()
    if all_passed:
        print("All performance tests PASSED!")
    else:
        print("Some performance tests FAILED.")


if __name__ == "__main__":
    main()
