"""ParticleType: immutable species descriptor and the table of known hadrons.

PDG codes are the signed integers of the Particle Data Group numbering scheme
(211 for pi+, -2212 for the antiproton). Spins and isospin projections are
stored doubled so they stay integral.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# PDG codes
PHOTON = 22
PI_Z = 111
PI_P = 211
PI_M = -211
ETA = 221
RHO_Z = 113
RHO_P = 213
RHO_M = -213
OMEGA = 223
K_P = 321
K_M = -321
K_Z = 311
P = 2212
N = 2112
ANTI_P = -2212
ANTI_N = -2112
LAMBDA = 3122
DELTA_PP = 2224
DELTA_P = 2214
DELTA_Z = 2114
DELTA_M = 1114


@dataclass(frozen=True)
class DecayBranch:
    """One decay channel: a relative weight and the PDG codes of the products."""

    weight: float
    products: tuple[int, ...]

    def types(self) -> tuple[ParticleType, ...]:
        return tuple(ParticleType.find(pdg) for pdg in self.products)


@dataclass(frozen=True)
class ParticleType:
    """Static properties of one particle species.

    Attributes:
        name: Short human-readable name ("pi+", "Delta++").
        pdgcode: Signed PDG number.
        mass: Pole mass in GeV.
        width: Total decay width in GeV (0 for stable species).
        charge: Electric charge in units of e.
        baryon_number: +1 baryons, -1 antibaryons, 0 mesons.
        spin: Twice the spin (1 for nucleons, 2 for the rho).
        isospin3: Twice the isospin projection.
        decay_modes: Hadronic decay channels; empty for stable species.
    """

    name: str
    pdgcode: int
    mass: float
    width: float = 0.0
    charge: int = 0
    baryon_number: int = 0
    spin: int = 0
    isospin3: int = 0
    decay_modes: tuple[DecayBranch, ...] = ()

    @property
    def is_stable(self) -> bool:
        return self.width <= 0.0 or not self.decay_modes

    @property
    def is_baryon(self) -> bool:
        return self.baryon_number != 0

    @property
    def is_nucleon(self) -> bool:
        return abs(self.pdgcode) in (P, N)

    @property
    def spin_degeneracy(self) -> int:
        return self.spin + 1

    def antiparticle_sign(self) -> int:
        """-1 for antibaryons, +1 otherwise."""
        return -1 if self.baryon_number < 0 else 1

    def breit_wigner(self, srts: float) -> float:
        """Non-relativistic Breit-Wigner spectral function at sqrt(s), normalized to 1."""
        if self.is_stable:
            return 0.0
        half_width = 0.5 * self.width
        return half_width / math.pi / ((srts - self.mass) ** 2 + half_width**2)

    @classmethod
    def find(cls, pdgcode: int) -> ParticleType:
        """Look up a registered type.

        Raises:
            KeyError: If no species with this PDG code is known.
        """
        try:
            return _TYPES_BY_PDG[pdgcode]
        except KeyError:
            raise KeyError(f"Unknown PDG code {pdgcode}") from None

    @classmethod
    def try_find(cls, pdgcode: int) -> ParticleType | None:
        return _TYPES_BY_PDG.get(pdgcode)

    @classmethod
    def find_by_name(cls, name: str) -> ParticleType:
        """Look up a registered type by its short name.

        Raises:
            KeyError: If no species with this name is known.
        """
        try:
            return _TYPES_BY_NAME[name]
        except KeyError:
            raise KeyError(f"Unknown particle name '{name}'") from None

    @classmethod
    def list_all(cls) -> list[ParticleType]:
        return list(_TYPES_BY_PDG.values())

    def __str__(self) -> str:
        return self.name


def resolve_species(key: str | int) -> ParticleType:
    """Resolve a species given as name ("pi+") or PDG code (211 or "211")."""
    if isinstance(key, int):
        return ParticleType.find(key)
    stripped = key.strip()
    try:
        return ParticleType.find(int(stripped))
    except ValueError:
        return ParticleType.find_by_name(stripped)


_NUCLEON_PION_P = (DecayBranch(1.0, (P, PI_P)),)
_DELTA_P_MODES = (DecayBranch(2.0 / 3.0, (P, PI_Z)), DecayBranch(1.0 / 3.0, (N, PI_P)))
_DELTA_Z_MODES = (DecayBranch(2.0 / 3.0, (N, PI_Z)), DecayBranch(1.0 / 3.0, (P, PI_M)))

_DEFAULT_TYPES: tuple[ParticleType, ...] = (
    ParticleType("gamma", PHOTON, 0.0, spin=2),
    ParticleType("pi0", PI_Z, 0.1350),
    ParticleType("pi+", PI_P, 0.1396, charge=1, isospin3=2),
    ParticleType("pi-", PI_M, 0.1396, charge=-1, isospin3=-2),
    ParticleType("eta", ETA, 0.548),
    ParticleType("K+", K_P, 0.4937, charge=1, isospin3=1),
    ParticleType("K-", K_M, 0.4937, charge=-1, isospin3=-1),
    ParticleType("K0", K_Z, 0.4976, isospin3=-1),
    ParticleType(
        "rho0", RHO_Z, 0.776, width=0.149, spin=2, decay_modes=(DecayBranch(1.0, (PI_P, PI_M)),)
    ),
    ParticleType(
        "rho+",
        RHO_P,
        0.776,
        width=0.149,
        charge=1,
        spin=2,
        isospin3=2,
        decay_modes=(DecayBranch(1.0, (PI_P, PI_Z)),),
    ),
    ParticleType(
        "rho-",
        RHO_M,
        0.776,
        width=0.149,
        charge=-1,
        spin=2,
        isospin3=-2,
        decay_modes=(DecayBranch(1.0, (PI_M, PI_Z)),),
    ),
    ParticleType("omega", OMEGA, 0.783, spin=2),
    ParticleType("p", P, 0.938, charge=1, baryon_number=1, spin=1, isospin3=1),
    ParticleType("n", N, 0.938, baryon_number=1, spin=1, isospin3=-1),
    ParticleType("p~", ANTI_P, 0.938, charge=-1, baryon_number=-1, spin=1, isospin3=-1),
    ParticleType("n~", ANTI_N, 0.938, baryon_number=-1, spin=1, isospin3=1),
    ParticleType("Lambda", LAMBDA, 1.116, baryon_number=1, spin=1),
    ParticleType(
        "Delta++",
        DELTA_PP,
        1.232,
        width=0.117,
        charge=2,
        baryon_number=1,
        spin=3,
        isospin3=3,
        decay_modes=_NUCLEON_PION_P,
    ),
    ParticleType(
        "Delta+",
        DELTA_P,
        1.232,
        width=0.117,
        charge=1,
        baryon_number=1,
        spin=3,
        isospin3=1,
        decay_modes=_DELTA_P_MODES,
    ),
    ParticleType(
        "Delta0",
        DELTA_Z,
        1.232,
        width=0.117,
        baryon_number=1,
        spin=3,
        isospin3=-1,
        decay_modes=_DELTA_Z_MODES,
    ),
    ParticleType(
        "Delta-",
        DELTA_M,
        1.232,
        width=0.117,
        charge=-1,
        baryon_number=1,
        spin=3,
        isospin3=-3,
        decay_modes=(DecayBranch(1.0, (N, PI_M)),),
    ),
)

_TYPES_BY_PDG: dict[int, ParticleType] = {t.pdgcode: t for t in _DEFAULT_TYPES}
_TYPES_BY_NAME: dict[str, ParticleType] = {t.name: t for t in _DEFAULT_TYPES}
