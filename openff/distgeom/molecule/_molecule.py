"""A light-weight, read-only molecular graph."""
import collections
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from openff.distgeom._pydantic import BaseModel, Field, conint
from openff.distgeom.molecule.exceptions import MoleculeGraphError
from openff.units.elements import SYMBOLS
from openff.utilities import requires_package

if TYPE_CHECKING:
    from openff.toolkit import Molecule

    PositiveInt = int
    BondOrder = int
else:
    PositiveInt = conint(ge=0)
    BondOrder = conint(ge=1, le=3)


class AtomParity(Enum):
    """The tetrahedral configuration of an atom.

    With the neighbours of an atom ``c`` sorted by index as ``n0 < n1 < n2 (< n3)``,
    ``EVEN`` means that ``det(n0 - c, n1 - c, n2 - c) > 0`` and ``ODD`` that it is
    negative.
    """

    NONE = "none"
    EVEN = "even"
    ODD = "odd"
    UNKNOWN = "unknown"


class BondParity(Enum):
    """The configuration of a double bond.

    ``E`` means that the lowest index substituents of the two double bond atoms
    are trans to each other and ``Z`` that they are cis. ``NONE`` is used for bonds
    that do not carry stereochemistry, e.g. because one end carries two equivalent
    substituents.
    """

    NONE = "none"
    E = "E"
    Z = "Z"
    UNKNOWN = "unknown"


class Atom(BaseModel):
    """An atom in a molecular graph."""

    atomic_number: PositiveInt = Field(..., description="The atomic number.")
    is_aromatic: bool = Field(False, description="Whether the atom is aromatic.")
    parity: AtomParity = Field(
        AtomParity.NONE, description="The tetrahedral parity of the atom."
    )

    @property
    def symbol(self) -> str:
        return SYMBOLS[self.atomic_number]


class Bond(BaseModel):
    """A bond between two atoms in a molecular graph."""

    atom1_index: PositiveInt = Field(..., description="The index of the first atom.")
    atom2_index: PositiveInt = Field(..., description="The index of the second atom.")

    order: BondOrder = Field(
        1,
        description="The (Kekulé) order of the bond. Aromatic bonds should "
        "additionally be flagged with ``is_aromatic``.",
    )
    is_aromatic: bool = Field(False, description="Whether the bond is aromatic.")

    parity: BondParity = Field(
        BondParity.NONE, description="The E/Z parity of a double bond."
    )

    def other_atom(self, index: int) -> int:
        return self.atom2_index if index == self.atom1_index else self.atom1_index


class MoleculeGraph:
    """A read-only molecular graph which exposes the topological queries needed
    to compile conformational constraints.

    Notes
    -----
    * The graph is usually built without hydrogen atoms, in which case each atom
      carries as many implicit hydrogens as needed.
    """

    def __init__(self, atoms: Sequence[Atom], bonds: Sequence[Bond]):
        """

        Parameters
        ----------
        atoms
            The atoms in the graph.
        bonds
            The bonds between the atoms.

        Raises
        ------
        MoleculeGraphError
        """

        self._atoms: Tuple[Atom, ...] = tuple(atoms)
        self._bonds: Tuple[Bond, ...] = tuple(bonds)

        self._neighbors: List[List[Tuple[int, int]]] = [[] for _ in self._atoms]
        self._bond_lookup: Dict[Tuple[int, int], int] = {}

        for bond_index, bond in enumerate(self._bonds):
            index_a, index_b = bond.atom1_index, bond.atom2_index

            if index_a >= len(self._atoms) or index_b >= len(self._atoms):
                raise MoleculeGraphError(
                    f"Bond {bond_index} references an atom which is not in the graph."
                )
            if index_a == index_b:
                raise MoleculeGraphError(
                    f"Bond {bond_index} connects an atom to itself."
                )

            key = (min(index_a, index_b), max(index_a, index_b))

            if key in self._bond_lookup:
                raise MoleculeGraphError(
                    f"Atoms {key[0]} and {key[1]} are connected by more than one bond."
                )

            self._bond_lookup[key] = bond_index

            self._neighbors[index_a].append((index_b, bond_index))
            self._neighbors[index_b].append((index_a, bond_index))

        self._ring_cache: Optional[
            Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...]]
        ] = None

    @property
    def atoms(self) -> Tuple[Atom, ...]:
        return self._atoms

    @property
    def bonds(self) -> Tuple[Bond, ...]:
        return self._bonds

    @property
    def n_atoms(self) -> int:
        return len(self._atoms)

    @property
    def n_bonds(self) -> int:
        return len(self._bonds)

    def atomic_number(self, index: int) -> int:
        return self._atoms[index].atomic_number

    def neighbors(self, index: int) -> List[Tuple[int, int]]:
        """Returns the ``(atom index, bond index)`` of each neighbour of an atom."""
        return self._neighbors[index]

    def neighbor_atoms(self, index: int) -> List[int]:
        return [neighbor for neighbor, _ in self._neighbors[index]]

    def degree(self, index: int) -> int:
        return len(self._neighbors[index])

    def heavy_degree(self, index: int) -> int:
        """Returns the number of non-hydrogen neighbours of an atom."""
        return sum(
            1
            for neighbor, _ in self._neighbors[index]
            if self.atomic_number(neighbor) > 1
        )

    def bond_index(self, index_a: int, index_b: int) -> Optional[int]:
        """Returns the index of the bond between two atoms if one exists."""
        return self._bond_lookup.get((min(index_a, index_b), max(index_a, index_b)))

    def is_aromatic_atom(self, index: int) -> bool:
        return self._atoms[index].is_aromatic or any(
            self._bonds[bond_index].is_aromatic
            for _, bond_index in self._neighbors[index]
        )

    def atom_pi(self, index: int) -> int:
        """Returns the number of pi bonds an atom takes part in. Atoms in aromatic
        rings are considered to take part in a single pi bond."""

        n_pi = sum(
            self._bonds[bond_index].order - 1
            for _, bond_index in self._neighbors[index]
            if not self._bonds[bond_index].is_aromatic
        )

        if n_pi == 0 and self.is_aromatic_atom(index):
            n_pi = 1

        return n_pi

    def shortest_path(
        self, index_a: int, index_b: int, max_length: Optional[int] = None
    ) -> Optional[List[int]]:
        """Finds the shortest path of atoms between two atoms.

        Parameters
        ----------
        index_a
            The index of the first atom.
        index_b
            The index of the second atom.
        max_length
            The maximum number of bonds that the path may span.

        Returns
        -------
            The atom indices along the path including both end points, or ``None``
            if no such path exists.
        """
        return self._shortest_path(index_a, index_b, max_length, None)

    def _shortest_path(
        self,
        index_a: int,
        index_b: int,
        max_length: Optional[int],
        excluded_bond: Optional[int],
    ) -> Optional[List[int]]:
        if index_a == index_b:
            return [index_a]

        parents = {index_a: -1}
        depths = {index_a: 0}

        queue = collections.deque([index_a])

        while len(queue) > 0:
            current = queue.popleft()

            if max_length is not None and depths[current] >= max_length:
                continue

            for neighbor, bond_index in self._neighbors[current]:
                if bond_index == excluded_bond or neighbor in parents:
                    continue

                parents[neighbor] = current
                depths[neighbor] = depths[current] + 1

                if neighbor == index_b:
                    path = [neighbor]

                    while parents[path[-1]] != -1:
                        path.append(parents[path[-1]])

                    return path[::-1]

                queue.append(neighbor)

        return None

    def _ring_data(self) -> Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...]]:
        if self._ring_cache is not None:
            return self._ring_cache

        bond_ring_sizes = [0] * self.n_bonds
        rings = set()

        for bond_index, bond in enumerate(self._bonds):
            path = self._shortest_path(
                bond.atom1_index, bond.atom2_index, None, bond_index
            )

            if path is None:
                continue

            bond_ring_sizes[bond_index] = len(path)

            start = path.index(min(path))
            ring = path[start:] + path[:start]

            if ring[1] > ring[-1]:
                ring = [ring[0]] + ring[1:][::-1]

            rings.add(tuple(ring))

        self._ring_cache = (
            tuple(bond_ring_sizes),
            tuple(sorted(rings, key=lambda r: (len(r), r))),
        )
        return self._ring_cache

    def bond_ring_sizes(self) -> Tuple[int, ...]:
        """Returns the size of the smallest ring that each bond is a member of, or
        zero for bonds which are not in a ring."""
        return self._ring_data()[0]

    def rings(self) -> Tuple[Tuple[int, ...], ...]:
        """Returns the atoms in the smallest ring of each ring bond, with duplicate
        rings removed."""
        return self._ring_data()[1]

    def atoms_share_ring(self, index_a: int, index_b: int) -> bool:
        return any(index_a in ring and index_b in ring for ring in self.rings())

    def substituent_size(self, core_index: int, first_index: int) -> int:
        """Returns the number of atoms in the substituent that is attached to
        ``core_index`` through ``first_index``, including ``first_index``."""

        visited = {core_index, first_index}
        queue = collections.deque([first_index])

        while len(queue) > 0:
            for neighbor, _ in self._neighbors[queue.popleft()]:
                if neighbor in visited:
                    continue

                visited.add(neighbor)
                queue.append(neighbor)

        return len(visited) - 1

    @classmethod
    @requires_package("rdkit")
    def from_rdkit(
        cls, rd_molecule, include_hydrogens: bool = False
    ) -> "MoleculeGraph":
        """Builds a graph from an RDKit molecule, perceiving the parity of any
        stereocenters and stereogenic double bonds.

        Parameters
        ----------
        rd_molecule
            The RDKit molecule.
        include_hydrogens
            Whether to retain explicit hydrogen atoms in the graph.
        """
        from openff.distgeom.utilities.toolkits import rd_molecule_to_graph_records

        atoms, bonds = rd_molecule_to_graph_records(rd_molecule, include_hydrogens)
        return cls(atoms, bonds)

    @classmethod
    @requires_package("openff.toolkit")
    def from_openff(
        cls, molecule: "Molecule", include_hydrogens: bool = False
    ) -> "MoleculeGraph":
        """Builds a graph from an OpenFF molecule. See ``from_rdkit``."""
        return cls.from_rdkit(molecule.to_rdkit(), include_hydrogens)
