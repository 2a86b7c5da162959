"""Compile the pairwise distance constraints of a molecule."""
import collections
import logging
import math
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy
from scipy.spatial.distance import cdist

from openff.distgeom.constraints.exceptions import ConstraintError
from openff.distgeom.molecule import BondParity, MoleculeGraph
from openff.distgeom.parameters import (
    BondAngleModel,
    BondLengthModel,
    compute_vdw_radii,
)
from openff.distgeom.torsions import TorsionDB, TorsionMode, torsion_fragment_id

if TYPE_CHECKING:
    from openff.distgeom.conformers import Conformer

_logger = logging.getLogger(__name__)

RING_VDW_SCALE = 0.75
"""The scale applied to the vdW lower bound of atoms three bonds apart in the same
ring, which removes the internal strain of ring systems."""

BOOST_MARGIN = 0.5
"""The distance [A] below a realised distance that a boosted lower bound is set to."""


class FixedDistance:
    """A pair of atoms whose distance is fixed to a single target value."""

    __slots__ = ("distance",)

    def __init__(self, distance: float):
        self.distance = distance

    @property
    def lower(self) -> float:
        return self.distance

    @property
    def upper(self) -> float:
        return self.distance

    def bounds_for(self, distance: float) -> Tuple[float, float]:
        return self.distance, self.distance

    def __repr__(self):
        return f"FixedDistance({self.distance:.4f})"


class BoundedDistance:
    """A pair of atoms whose distance should lie within a window."""

    __slots__ = ("lower", "upper")

    def __init__(self, lower: float, upper: float):
        self.lower = lower
        self.upper = upper

    def bounds_for(self, distance: float) -> Tuple[float, float]:
        return self.lower, self.upper

    def __repr__(self):
        return f"BoundedDistance({self.lower:.4f}, {self.upper:.4f})"


class CandidateDistances:
    """A pair of atoms whose distance should match one of a few discrete values,
    typically derived from the preferred torsions of a rotatable bond."""

    __slots__ = ("distances",)

    def __init__(self, distances: Sequence[float]):
        if len(distances) == 0:
            raise ConstraintError("At least one candidate distance is required.")

        self.distances = tuple(distances)

    @property
    def lower(self) -> float:
        return min(self.distances)

    @property
    def upper(self) -> float:
        return max(self.distances)

    def nearest(self, distance: float) -> float:
        """Returns the candidate closest to ``distance``, preferring the first on
        ties."""

        nearest = self.distances[0]
        difference = abs(nearest - distance)

        for candidate in self.distances[1:]:
            candidate_difference = abs(candidate - distance)

            if candidate_difference < difference:
                nearest, difference = candidate, candidate_difference

        return nearest

    def bounds_for(self, distance: float) -> Tuple[float, float]:
        nearest = self.nearest(distance)
        return nearest, nearest

    def __repr__(self):
        return f"CandidateDistances({', '.join(f'{d:.4f}' for d in self.distances)})"


DistanceConstraint = Union[FixedDistance, BoundedDistance, CandidateDistances]


class DistanceConstraintTable:
    """A triangular table holding one distance constraint per unordered atom pair.

    Entries are stored in rows indexed by the higher atom index, so that
    ``rows[i][j]`` with ``i > j`` holds the constraint between atoms ``i`` and
    ``j``.
    """

    def __init__(self, n_atoms: int):
        self._n_atoms = n_atoms
        self._rows: List[List[Optional[DistanceConstraint]]] = [
            [None] * index for index in range(n_atoms)
        ]

    @property
    def n_atoms(self) -> int:
        return self._n_atoms

    @property
    def rows(self) -> List[List[Optional[DistanceConstraint]]]:
        return self._rows

    def get(self, index_a: int, index_b: int) -> Optional[DistanceConstraint]:
        if index_a == index_b:
            raise ConstraintError("An atom can not be constrained to itself.")

        high, low = (index_a, index_b) if index_a > index_b else (index_b, index_a)
        return self._rows[high][low]

    def __getitem__(self, pair: Tuple[int, int]) -> DistanceConstraint:
        entry = self.get(*pair)

        if entry is None:
            raise KeyError(pair)

        return entry

    def _set_if_missing(self, index_a: int, index_b: int, entry: DistanceConstraint):
        high, low = (index_a, index_b) if index_a > index_b else (index_b, index_a)

        if self._rows[high][low] is not None:
            return False

        self._rows[high][low] = entry
        return True

    def set_fixed(self, index_a: int, index_b: int, distance: float) -> bool:
        """Fixes the distance between two atoms unless the pair is already
        constrained.

        Returns
        -------
            Whether the constraint was stored.
        """
        return self._set_if_missing(index_a, index_b, FixedDistance(distance))

    def set_bounded(
        self, index_a: int, index_b: int, lower: float, upper: float
    ) -> bool:
        """Constrains the distance between two atoms to a window unless the pair is
        already constrained. The lower bound is clamped so that it never exceeds
        the upper bound."""
        return self._set_if_missing(
            index_a, index_b, BoundedDistance(min(lower, upper), upper)
        )

    def set_candidates(
        self, index_a: int, index_b: int, distances: Sequence[float]
    ) -> bool:
        """Constrains the distance between two atoms to a set of discrete values
        unless the pair is already constrained."""
        return self._set_if_missing(index_a, index_b, CandidateDistances(distances))

    def __iter__(self) -> Iterator[Tuple[int, int, DistanceConstraint]]:
        for high, row in enumerate(self._rows):
            for low, entry in enumerate(row):
                yield high, low, entry

    def n_missing(self) -> int:
        return sum(1 for *_, entry in self if entry is None)

    def counts(self) -> Dict[str, int]:
        """Returns the number of entries of each constraint type."""
        return dict(
            collections.Counter(type(entry).__name__ for *_, entry in self)
        )

    def boost(self, conformer: "Conformer"):
        """Widens the lower bound of each bounded pair whose distance in a
        previously generated conformer exceeds that bound, to relax strains that
        would otherwise pile up.

        Notes
        -----
        * This modifies the table in place and must not be called while conformers
          are being generated from it.
        """

        coordinates = conformer.to_array()
        distances = cdist(coordinates, coordinates)

        n_boosted = 0

        for high, low, entry in self:
            if not isinstance(entry, BoundedDistance):
                continue

            distance = float(distances[high, low])

            if entry.lower < distance:
                entry.lower = min(distance - BOOST_MARGIN, entry.upper)
                n_boosted += 1

        _logger.debug(f"boosted the lower bounds of {n_boosted} atom pairs")


class DistanceConstraintBuilder:
    """Compiles the ``DistanceConstraintTable`` of a molecular graph from its
    topology, ideal bond lengths and angles, declared stereochemistry and the
    preferred torsions of its rotatable bonds.
    """

    def __init__(self, graph: MoleculeGraph, torsion_db: Optional[TorsionDB] = None):
        """

        Parameters
        ----------
        graph
            The graph to compile the constraints for.
        torsion_db
            The knowledge base to look rotatable bond torsions up in. By default the
            shipped knowledge base is used.
        """

        if torsion_db is None:
            torsion_db = TorsionDB.default()
        else:
            torsion_db.initialize(TorsionMode.ANGLES)

        self._graph = graph
        self._torsion_db = torsion_db

        self._bond_lengths = BondLengthModel.compute(graph)
        self._bond_angles = BondAngleModel.compute(graph)
        self._vdw_radii = compute_vdw_radii(graph)

        self._table = DistanceConstraintTable(graph.n_atoms)

    def _angle(self, center: int, index_a: int, index_b: int) -> float:
        return self._bond_angles[(center, min(index_a, index_b), max(index_a, index_b))]

    def _length(self, index_a: int, index_b: int) -> float:
        return self._bond_lengths[self._graph.bond_index(index_a, index_b)]

    def _other_neighbors(self, index: int, excluded: int) -> List[int]:
        return [
            neighbor
            for neighbor in self._graph.neighbor_atoms(index)
            if neighbor != excluded
        ]

    def _add_bond_constraints(self):
        for bond_index, bond in enumerate(self._graph.bonds):
            self._table.set_fixed(
                bond.atom1_index, bond.atom2_index, self._bond_lengths[bond_index]
            )

    def _add_angle_constraints(self):
        for center in range(self._graph.n_atoms):
            neighbors = self._graph.neighbor_atoms(center)

            for i in range(1, len(neighbors)):
                length_a = self._length(center, neighbors[i])

                for j in range(i):
                    length_b = self._length(center, neighbors[j])
                    angle = self._angle(center, neighbors[i], neighbors[j])

                    distance = math.sqrt(
                        length_a * length_a
                        + length_b * length_b
                        - 2.0 * length_a * length_b * math.cos(angle)
                    )
                    self._table.set_fixed(neighbors[i], neighbors[j], distance)

    def _add_triple_bond_constraint(self, bond_index: int):
        bond = self._graph.bonds[bond_index]
        atoms = (bond.atom1_index, bond.atom2_index)

        distance = self._bond_lengths[bond_index]
        terminal_atoms = []

        for i in range(2):
            neighbor = self._other_neighbors(atoms[i], atoms[1 - i])[0]

            distance += self._length(atoms[i], neighbor)
            terminal_atoms.append(neighbor)

        self._table.set_fixed(*terminal_atoms, distance)

    def _add_double_bond_constraints(self, bond_index: int):
        bond = self._graph.bonds[bond_index]
        atoms = (bond.atom1_index, bond.atom2_index)

        double_bond_length = self._bond_lengths[bond_index]

        substituents = [self._other_neighbors(atoms[i], atoms[1 - i]) for i in range(2)]

        for i, substituent_a in enumerate(substituents[0]):
            for j, substituent_b in enumerate(substituents[1]):
                # the parity refers to the lowest index substituent on each side
                is_e = bond.parity == BondParity.E

                if len(substituents[0]) == 2 and substituent_a > substituents[0][1 - i]:
                    is_e = not is_e
                if len(substituents[1]) == 2 and substituent_b > substituents[1][1 - j]:
                    is_e = not is_e

                length_a = self._length(atoms[0], substituent_a)
                length_b = self._length(atoms[1], substituent_b)

                angle_a = self._angle(atoms[0], atoms[1], substituent_a)
                angle_b = self._angle(atoms[1], atoms[0], substituent_b)

                s1 = (
                    double_bond_length
                    - length_a * math.cos(angle_a)
                    - length_b * math.cos(angle_b)
                )
                s2 = length_a * math.sin(angle_a) + (
                    length_b * math.sin(angle_b) * (1.0 if is_e else -1.0)
                )

                self._table.set_fixed(
                    substituent_a, substituent_b, math.sqrt(s1 * s1 + s2 * s2)
                )

    def _is_candidate_bond(self, bond_index: int, ring_sizes: Sequence[int]) -> bool:
        bond = self._graph.bonds[bond_index]

        return (
            bond.order == 1
            and not bond.is_aromatic
            and (ring_sizes[bond_index] == 0 or ring_sizes[bond_index] > 5)
            and self._graph.heavy_degree(bond.atom1_index) >= 2
            and self._graph.heavy_degree(bond.atom2_index) >= 2
        )

    def _add_torsion_constraints(self, bond_index: int) -> int:
        bond = self._graph.bonds[bond_index]
        atom_a, atom_b = bond.atom1_index, bond.atom2_index

        bond_length = self._bond_lengths[bond_index]
        n_added = 0

        for terminal_a in self._other_neighbors(atom_a, atom_b):
            for terminal_b in self._other_neighbors(atom_b, atom_a):
                if terminal_a == terminal_b:
                    continue

                torsion_id = torsion_fragment_id(
                    self._graph, (terminal_a, atom_a, atom_b, terminal_b)
                )
                dihedrals = self._torsion_db.get_torsions(torsion_id)

                if dihedrals is None:
                    continue

                length_a = self._length(atom_a, terminal_a)
                length_b = self._length(atom_b, terminal_b)

                angle_a = self._angle(atom_a, terminal_a, atom_b)
                angle_b = self._angle(atom_b, terminal_b, atom_a)

                dx = (
                    bond_length
                    - length_a * math.cos(angle_a)
                    - length_b * math.cos(angle_b)
                )
                offset_a = length_a * math.sin(angle_a)
                offset_b = length_b * math.sin(angle_b)

                distances = []

                for dihedral in dihedrals:
                    # each dihedral is the lower edge of a one degree bin
                    dihedral = math.radians(dihedral + 0.5)

                    dy = offset_b * math.cos(dihedral) - offset_a
                    dz = offset_b * math.sin(dihedral)

                    distances.append(math.sqrt(dx * dx + dy * dy + dz * dz))

                n_added += self._table.set_candidates(terminal_a, terminal_b, distances)

        return n_added

    def _add_three_bond_constraints(self):
        ring_sizes = self._graph.bond_ring_sizes()
        n_candidates = 0

        for bond_index, bond in enumerate(self._graph.bonds):
            atoms = (bond.atom1_index, bond.atom2_index)

            if self._graph.degree(atoms[0]) < 2 or self._graph.degree(atoms[1]) < 2:
                continue

            if bond.order == 3:
                self._add_triple_bond_constraint(bond_index)

            elif (
                bond.order == 2
                and not bond.is_aromatic
                and bond.parity != BondParity.UNKNOWN
                and (ring_sizes[bond_index] == 0 or ring_sizes[bond_index] > 5)
            ):
                self._add_double_bond_constraints(bond_index)

            elif self._is_candidate_bond(bond_index, ring_sizes):
                n_candidates += self._add_torsion_constraints(bond_index)

        _logger.debug(f"added {n_candidates} torsion derived candidate constraints")

    def _add_allene_constraints(self):
        for center in range(self._graph.n_atoms):
            neighbors = self._graph.neighbors(center)

            if (
                self._graph.atom_pi(center) != 2
                or len(neighbors) != 2
                or any(
                    self._graph.bonds[bond_index].order != 2
                    or self._graph.bonds[bond_index].is_aromatic
                    for _, bond_index in neighbors
                )
            ):
                continue

            (atom_a, bond_a), (atom_b, bond_b) = neighbors

            cumulated_length = self._bond_lengths[bond_a] + self._bond_lengths[bond_b]

            for terminal_a in self._other_neighbors(atom_a, center):
                for terminal_b in self._other_neighbors(atom_b, center):
                    angle_a = self._angle(atom_a, center, terminal_a)
                    angle_b = self._angle(atom_b, center, terminal_b)

                    length_a = self._length(atom_a, terminal_a)
                    length_b = self._length(atom_b, terminal_b)

                    dx = (
                        cumulated_length
                        - length_a * math.cos(angle_a)
                        - length_b * math.cos(angle_b)
                    )
                    dy = length_a * math.sin(angle_a)
                    dz = length_b * math.sin(angle_b)

                    self._table.set_fixed(
                        terminal_a, terminal_b, math.sqrt(dx * dx + dy * dy + dz * dz)
                    )

    def _add_path_constraints(self, root: int):
        """Bounds the distance between ``root`` and every lower index atom which is
        three or more bonds away by the vdW radii from below and by the length of
        the shortest path between them from above."""

        bond_counts = {root: 0}
        path_distances = {root: 0.0}

        queue = collections.deque([root])

        while len(queue) > 0:
            parent = queue.popleft()

            for candidate, bond_index in self._graph.neighbors(parent):
                if candidate in bond_counts:
                    continue

                queue.append(candidate)

                bond_count = bond_counts[parent] + 1
                bond_counts[candidate] = bond_count

                if bond_count == 1:
                    path_distances[candidate] = self._bond_lengths[bond_index]
                    continue
                if bond_count == 2:
                    path_distances[candidate] = self._table.get(root, candidate).lower
                    continue

                path_distances[candidate] = (
                    path_distances[parent] + self._bond_lengths[bond_index]
                )

                if candidate > root:
                    continue

                lower = self._vdw_radii[root] + self._vdw_radii[candidate]

                if bond_count == 3 and self._graph.atoms_share_ring(root, candidate):
                    lower *= RING_VDW_SCALE

                self._table.set_bounded(
                    root, candidate, lower, path_distances[candidate]
                )

    def _add_disconnected_constraints(self):
        for high in range(1, self._graph.n_atoms):
            for low in range(high):
                self._table.set_bounded(
                    high, low, self._vdw_radii[high] + self._vdw_radii[low], math.inf
                )

    def build(self) -> DistanceConstraintTable:
        """Builds the table. Pairs are assigned on a first come first served basis,
        so that each pair is constrained by the most specific rule that applies.

        Returns
        -------
            A table with exactly one entry per atom pair.
        """

        self._add_bond_constraints()
        self._add_angle_constraints()
        self._add_three_bond_constraints()
        self._add_allene_constraints()

        for root in range(self._graph.n_atoms):
            self._add_path_constraints(root)

        self._add_disconnected_constraints()

        n_missing = self._table.n_missing()

        if n_missing > 0:
            raise ConstraintError(f"{n_missing} atom pairs were left unconstrained")

        _logger.debug(f"compiled distance constraints: {self._table.counts()}")

        return self._table

    @classmethod
    def build_table(
        cls, graph: MoleculeGraph, torsion_db: Optional[TorsionDB] = None
    ) -> DistanceConstraintTable:
        """A convenience wrapper around ``DistanceConstraintBuilder(...).build()``."""
        return cls(graph, torsion_db).build()


def table_to_bounds(
    table: DistanceConstraintTable,
) -> Tuple[numpy.ndarray, numpy.ndarray]:
    """Returns symmetric matrices of the lower and upper bound of every pair, with
    zeros on the diagonal."""

    lower = numpy.zeros((table.n_atoms, table.n_atoms))
    upper = numpy.zeros((table.n_atoms, table.n_atoms))

    for high, low, entry in table:
        lower[high, low] = lower[low, high] = entry.lower
        upper[high, low] = upper[low, high] = entry.upper

    return lower, upper
