"""Engine: experiment setup and the time-step loop."""

from smash.engine.experiment import Experiment, ExperimentStats
from smash.engine.initial_conditions import create_box_particles, sample_thermal_momentum
from smash.engine.propagation import (
    find_wall_crossings,
    propagate_straight_line,
    update_momenta,
)
from smash.engine.simulation import run_time_step

__all__ = [
    "Experiment",
    "ExperimentStats",
    "create_box_particles",
    "find_wall_crossings",
    "propagate_straight_line",
    "run_time_step",
    "sample_thermal_momentum",
    "update_momenta",
]
