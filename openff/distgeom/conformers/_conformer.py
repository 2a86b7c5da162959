"""Mutable coordinate containers used while relaxing conformers."""
from typing import Dict, List, Optional, Tuple, Union

import numpy
from openff.units import Quantity, unit

_RANDOM_BUFFER_SIZE = 4096


class Conformer:
    """The coordinates [A] of one conformer of a molecule, stored as three
    parallel lists of floats so that single atoms can be moved cheaply."""

    __slots__ = ("x", "y", "z", "_bond_torsions")

    def __init__(self, n_atoms: int):
        self.x: List[float] = [0.0] * n_atoms
        self.y: List[float] = [0.0] * n_atoms
        self.z: List[float] = [0.0] * n_atoms

        self._bond_torsions: Dict[int, int] = {}

    @property
    def n_atoms(self) -> int:
        return len(self.x)

    def coordinates(self, index: int) -> Tuple[float, float, float]:
        return self.x[index], self.y[index], self.z[index]

    def set_coordinates(self, index: int, coordinates: Tuple[float, float, float]):
        self.x[index], self.y[index], self.z[index] = coordinates

    def get_bond_torsion(self, bond_index: int) -> int:
        """Returns the torsion [deg] recorded for a bond, or -1 if none was."""
        return self._bond_torsions.get(bond_index, -1)

    def set_bond_torsion(self, bond_index: int, torsion: int):
        self._bond_torsions[bond_index] = torsion

    @property
    def bond_torsions(self) -> Dict[int, int]:
        return {**self._bond_torsions}

    def copy(self) -> "Conformer":
        conformer = Conformer(0)
        conformer.x = [*self.x]
        conformer.y = [*self.y]
        conformer.z = [*self.z]
        conformer._bond_torsions = {**self._bond_torsions}
        return conformer

    def to_array(self) -> numpy.ndarray:
        """Returns the coordinates [A] with shape=(n_atoms, 3)."""
        return numpy.array([self.x, self.y, self.z], dtype=float).T.reshape(-1, 3)

    def to_quantity(self) -> Quantity:
        return self.to_array() * unit.angstrom

    @classmethod
    def from_array(cls, coordinates: Union[numpy.ndarray, Quantity]) -> "Conformer":
        """Creates a conformer from coordinates with shape=(n_atoms, 3), which are
        assumed to be in angstrom unless they carry units."""

        if isinstance(coordinates, Quantity):
            coordinates = coordinates.m_as(unit.angstrom)

        coordinates = numpy.asarray(coordinates, dtype=float).reshape(-1, 3)

        conformer = cls(len(coordinates))
        conformer.x = coordinates[:, 0].tolist()
        conformer.y = coordinates[:, 1].tolist()
        conformer.z = coordinates[:, 2].tolist()

        return conformer


class ThreadState:
    """The scratch state owned by a single worker while it generates conformers.

    Parameters
    ----------
    n_constraints
        The number of geometric constraints that may be disabled.
    seed
        The seed of the random number generator. A seed of 0 or ``None`` seeds
        the generator from system entropy.
    """

    def __init__(
        self,
        n_constraints: int,
        seed: Optional[Union[int, numpy.random.SeedSequence]] = None,
    ):
        self._generator = numpy.random.default_rng(seed if seed else None)

        self._buffer: List[float] = []
        self._position = 0

        self.disabled: List[bool] = [False] * n_constraints
        self.atom_strain: Optional[List[float]] = None

    def random(self) -> float:
        """Returns a uniform random float in [0, 1)."""

        if self._position >= len(self._buffer):
            self._buffer = self._generator.random(_RANDOM_BUFFER_SIZE).tolist()
            self._position = 0

        value = self._buffer[self._position]
        self._position += 1

        return value

    def reset(self):
        """Re-enables all constraints and invalidates any cached strain."""
        self.disabled = [False] * len(self.disabled)
        self.atom_strain = None
