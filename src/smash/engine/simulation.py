"""Time-step driver: finds, validates and commits the actions of one step."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smash.actions.action import ActionError
from smash.engine.propagation import (
    find_wall_crossings,
    propagate_straight_line,
    update_momenta,
)

if TYPE_CHECKING:
    from smash.actions.action import Action
    from smash.engine.experiment import Experiment

logger = logging.getLogger(__name__)

# Log progress at debug level every N steps
PROGRESS_LOG_INTERVAL = 10


def run_time_step(experiment: Experiment) -> int:
    """Advance the experiment by one time step.

    Step sequence:
    1. Snapshot the particles (copies with validity keys)
    2. Collect scatter and decay candidates from the snapshot, sort by time
    3. For each candidate: drop it if stale (first commit wins), otherwise
       propagate to its time, refresh its copies, generate and perform it
    4. Propagate to the end of the step, apply the mean-field kick, wrap
       positions into the box
    5. Advance the clock

    Args:
        experiment: The experiment to advance

    Returns:
        Number of actions performed in this step (wall crossings excluded).

    Side effects:
        - Mutates experiment.particles, experiment.id_process and experiment.time
        - Updates experiment.stats
    """
    dt = experiment.config.time_step
    end_time = experiment.time + dt

    # 1. Snapshot
    search_list = experiment.particles.copy_to_vector()

    # 2. Candidates, earliest first
    actions: list[Action] = list(experiment.scatter_finder.find_actions(search_list, dt))
    if experiment.decay_finder is not None:
        actions.extend(experiment.decay_finder.find_actions(search_list, dt))
    actions.sort()

    # 3. Commit one at a time
    performed = 0
    for action in actions:
        if _perform_if_valid(experiment, action):
            performed += 1

    # 4. Propagate to the end of the step
    propagate_straight_line(experiment.particles, end_time)
    if experiment.potentials is not None:
        update_momenta(experiment.particles, dt, experiment.potentials)
    for crossing in find_wall_crossings(experiment.particles, experiment.config.box_length):
        crossing.generate_final_state()
        crossing.perform(experiment.particles, experiment.id_process)
        experiment.id_process += 1
        experiment.stats.wall_crossings += 1

    # 5. Clock
    experiment.time = end_time
    experiment.stats.steps += 1
    if experiment.stats.steps % PROGRESS_LOG_INTERVAL == 0:
        logger.debug(
            "Step %d: particles=%d, performed=%d, discarded=%d",
            experiment.stats.steps,
            len(experiment.particles),
            experiment.stats.total_performed(),
            experiment.stats.discarded,
            extra={"sim_time": experiment.time},
        )
    return performed


def _perform_if_valid(experiment: Experiment, action: Action) -> bool:
    """Commit ``action`` unless an earlier commit already invalidated it."""
    particles = experiment.particles
    if not action.is_valid(particles):
        experiment.stats.discarded += 1
        return False
    propagate_straight_line(particles, action.time_of_execution)
    action.update_incoming(particles)
    try:
        action.generate_final_state()
    except ActionError as e:
        logger.debug("Dropping %r: %s", action, e)
        experiment.stats.failed += 1
        return False
    action.perform(particles, experiment.id_process)
    experiment.id_process += 1
    experiment.stats.record(action.process_type)
    return True
