"""FastAPI inspection server for a running experiment.

Provides:
- GET /api/state: clock, registry bookkeeping and run statistics
- GET /api/particles, GET /api/particles/{id}: particle snapshots
- POST /api/particles, DELETE /api/particles/{id}: manual insert and removal
- POST /api/step: advance the experiment by n time steps
- POST /api/reset: re-initialize the experiment
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, Field

from smash.config import get_config
from smash.engine.experiment import Experiment
from smash.model.fourvector import FourVector, ThreeVector
from smash.model.particledata import ParticleData
from smash.model.particletype import resolve_species

if TYPE_CHECKING:
    from smash.config import SimulationConfig

logger = logging.getLogger(__name__)


class SimulationState:
    """Thread-safe owner of one experiment.

    The particle registry is not synchronized, so every access from the
    request handlers goes through ``_lock``; steps are committed one at a
    time. A step batch may hold the lock for long, so every handler that
    touches the state is a plain ``def`` and runs in the threadpool; only
    ``/health`` runs on the event loop.
    """

    def __init__(self, config: SimulationConfig | None = None) -> None:
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._experiment = Experiment(self._config)
        self._experiment.initialize()

    @property
    def experiment(self) -> Experiment:
        return self._experiment

    def snapshot(self) -> dict[str, Any]:
        """Registry bookkeeping and statistics, read under the lock."""
        with self._lock:
            exp = self._experiment
            particles = exp.particles
            return {
                "time": exp.time,
                "steps": exp.stats.steps,
                "particle_count": len(particles),
                "data_size": particles.data_size,
                "capacity": particles.capacity,
                "holes": len(particles.free_slots),
                "id_max": particles.id_max,
                "id_process": exp.id_process,
                "stats": exp.stats.to_dict(),
                "conserved": exp.conserved_quantities(),
                "multiplicities": exp.multiplicities(),
            }

    def particles(self, limit: int | None = None) -> list[ParticleData]:
        with self._lock:
            plist = self._experiment.particles.copy_to_vector()
        return plist if limit is None else plist[:limit]

    def find(self, particle_id: int) -> ParticleData | None:
        with self._lock:
            return self._experiment.particles.find_by_id(particle_id)

    def insert(self, p: ParticleData) -> ParticleData:
        with self._lock:
            return self._experiment.particles.insert(p)

    def remove(self, particle_id: int) -> bool:
        """Remove the particle with ``particle_id``; False if there is none."""
        with self._lock:
            particles = self._experiment.particles
            current = particles.find_by_id(particle_id)
            if current is None:
                return False
            particles.remove(current)
            return True

    def step(self, steps: int) -> tuple[int, float]:
        """Run ``steps`` time steps.

        Returns:
            The number of performed actions and the clock afterwards, both
            read under the lock so a concurrent reset cannot interleave.
        """
        with self._lock:
            performed = sum(self._experiment.run_time_step() for _ in range(steps))
            return performed, self._experiment.time

    def reset(self) -> None:
        with self._lock:
            self._experiment = Experiment(self._config)
            self._experiment.initialize()


# Global simulation state
_sim_state: SimulationState | None = None


def get_sim_state() -> SimulationState:
    """Get or create the global simulation state."""
    global _sim_state
    if _sim_state is None:
        _sim_state = SimulationState()
    return _sim_state


# Create FastAPI app
app = FastAPI(
    title="SMASH transport",
    description="Inspection API for a hadronic transport box experiment",
    version="0.1.0",
)


# Pydantic models for REST responses


class ParticleResponse(BaseModel):
    """Response model for one particle snapshot."""

    id: int = Field(description="Particle id, unique within the experiment")
    index: int = Field(description="Slot index in the registry")
    id_process: int = Field(description="Id of the last process that touched the particle")
    pdgcode: int = Field(description="PDG code")
    name: str = Field(description="Species name")
    position: list[float] = Field(description="Four-position (t, x, y, z) in fm")
    momentum: list[float] = Field(description="Four-momentum (E, px, py, pz) in GeV")
    mass: float = Field(description="Effective mass in GeV")
    collisions: int = Field(description="Number of processes the particle went through")
    process_type: str = Field(description="Type of the last process")


class StateResponse(BaseModel):
    """Response model for the experiment state."""

    time: float = Field(description="Current time (fm)")
    steps: int = Field(description="Time steps performed")
    particle_count: int = Field(description="Number of live particles")
    data_size: int = Field(description="Slots up to the last live particle")
    capacity: int = Field(description="Allocated slots")
    holes: int = Field(description="Reusable slots in the free list")
    id_max: int = Field(description="Highest id handed out")
    id_process: int = Field(description="Next process id")
    stats: dict[str, Any] = Field(description="Performed and discarded actions")
    conserved: dict[str, Any] = Field(description="Total energy, momentum, charge, baryon number")
    multiplicities: dict[str, int] = Field(description="Particles per species")


class InsertParticleRequest(BaseModel):
    """Request model for inserting a particle by hand."""

    species: str = Field(description="Species name or PDG code")
    position: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0, 0.0],
        min_length=4,
        max_length=4,
        description="Four-position (t, x, y, z) in fm",
    )
    momentum: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3,
        max_length=3,
        description="Three-momentum (px, py, pz) in GeV; the particle is put on its mass shell",
    )


class StepResponse(BaseModel):
    """Response for a step command."""

    steps: int = Field(description="Time steps run")
    performed: int = Field(description="Actions performed")
    time: float = Field(description="Time after the steps (fm)")


class ControlCommandResponse(BaseModel):
    """Response for control commands."""

    success: bool = Field(description="Whether command succeeded")
    message: str = Field(description="Status message")


def _particle_response(p: ParticleData) -> ParticleResponse:
    return ParticleResponse(
        id=p.id,
        index=p.index,
        id_process=p.id_process,
        pdgcode=p.pdgcode,
        name=p.type.name,
        position=[p.position.x0, p.position.x1, p.position.x2, p.position.x3],
        momentum=[p.momentum.x0, p.momentum.x1, p.momentum.x2, p.momentum.x3],
        mass=p.effective_mass,
        collisions=p.history.collisions_per_particle,
        process_type=p.history.process_type.name,
    )


# REST endpoints


@app.get("/api/state", response_model=StateResponse, tags=["experiment"])
def get_state() -> StateResponse:
    """Get the experiment state summary."""
    return StateResponse(**get_sim_state().snapshot())


@app.get("/api/particles", response_model=list[ParticleResponse], tags=["particles"])
def get_particles(
    limit: int | None = Query(default=None, ge=1, description="Maximum number of particles"),
) -> list[ParticleResponse]:
    """Get snapshots of the live particles in slot order."""
    return [_particle_response(p) for p in get_sim_state().particles(limit)]


@app.get("/api/particles/{particle_id}", response_model=ParticleResponse, tags=["particles"])
def get_particle(particle_id: int) -> ParticleResponse:
    """Get one particle by id."""
    p = get_sim_state().find(particle_id)
    if p is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Particle {particle_id} not found",
        )
    return _particle_response(p)


@app.post(
    "/api/particles",
    response_model=ParticleResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["particles"],
)
def insert_particle(request: InsertParticleRequest) -> ParticleResponse:
    """Insert a particle; it gets a fresh id and the first free slot."""
    try:
        ptype = resolve_species(request.species)
    except KeyError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e.args[0]),
        ) from e
    p = ParticleData(ptype, position=FourVector(*request.position))
    p.set_4momentum(ptype.mass, ThreeVector(*request.momentum))
    stored = get_sim_state().insert(p)
    logger.info("Inserted %s #%d at slot %d", ptype.name, stored.id, stored.index)
    return _particle_response(stored)


@app.delete(
    "/api/particles/{particle_id}", response_model=ControlCommandResponse, tags=["particles"]
)
def delete_particle(particle_id: int) -> ControlCommandResponse:
    """Remove a particle by id; its slot becomes reusable."""
    if not get_sim_state().remove(particle_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Particle {particle_id} not found",
        )
    return ControlCommandResponse(success=True, message=f"Removed particle {particle_id}")


@app.post("/api/step", response_model=StepResponse, tags=["experiment"])
def step(
    steps: int = Query(default=1, ge=1, le=1000, description="Number of time steps"),
) -> StepResponse:
    """Advance the experiment."""
    performed, time = get_sim_state().step(steps)
    return StepResponse(steps=steps, performed=performed, time=time)


@app.post("/api/reset", response_model=ControlCommandResponse, tags=["experiment"])
def reset() -> ControlCommandResponse:
    """Re-initialize the experiment from the configuration."""
    get_sim_state().reset()
    logger.info("Experiment reset to initial state")
    return ControlCommandResponse(success=True, message="Experiment reset to initial state")


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
