"""Actions: physics processes and the finders that propose them."""

from smash.actions.action import Action, ActionError, ProcessType
from smash.actions.decayaction import DecayAction
from smash.actions.finders import DecayActionsFinder, ScatterActionsFinder, collision_time
from smash.actions.scatteraction import CollisionBranch, ScatterAction, StringProcess
from smash.actions.wallcrossing import WallCrossingAction

__all__ = [
    "Action",
    "ActionError",
    "CollisionBranch",
    "DecayAction",
    "DecayActionsFinder",
    "ProcessType",
    "ScatterAction",
    "ScatterActionsFinder",
    "StringProcess",
    "WallCrossingAction",
    "collision_time",
]
