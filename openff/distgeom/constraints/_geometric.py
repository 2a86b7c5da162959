"""Derive the planarity, linearity and stereo constraints of a molecule."""
import logging
from enum import Enum
from typing import List, NamedTuple, Sequence, Set, Tuple

from openff.distgeom.molecule import AtomParity, MoleculeGraph

_logger = logging.getLogger(__name__)


class ConstraintType(Enum):
    Plane = "plane"
    WeakPlane = "weak-plane"
    Line = "line"
    Stereo = "stereo"


class GeometricConstraint(NamedTuple):
    """A constraint on the relative placement of a group of atoms.

    For stereo constraints ``atoms`` holds the neighbors of the stereocenter sorted
    by index, with the first two swapped for odd parities, followed by the center
    itself.
    """

    type: ConstraintType
    atoms: Tuple[int, ...]

    @property
    def center(self) -> int:
        """The stereocenter of a stereo constraint."""
        if self.type != ConstraintType.Stereo:
            raise ValueError(f"A {self.type.value} constraint does not have a center.")

        return self.atoms[-1]


def _grow_fragment(
    graph: MoleculeGraph,
    seed_atoms: Sequence[int],
    is_fragment_bond: List[bool],
    stop_at_sp_atoms: bool = False,
) -> Tuple[int, ...]:
    """Grows a fragment outwards from a pair of atoms along the bonds flagged in
    ``is_fragment_bond``, consuming the flags as it goes, before adding every
    direct neighbor of the fragment atoms."""

    members = list(seed_atoms)
    is_member: Set[int] = set(seed_atoms)

    position = 0

    while position < len(members):
        current = members[position]
        position += 1

        if stop_at_sp_atoms and graph.atom_pi(current) >= 2:
            continue

        for neighbor, bond_index in graph.neighbors(current):
            if not is_fragment_bond[bond_index]:
                continue

            is_fragment_bond[bond_index] = False

            if neighbor not in is_member:
                is_member.add(neighbor)
                members.append(neighbor)

    for current in list(members):
        for neighbor in graph.neighbor_atoms(current):
            if neighbor not in is_member:
                is_member.add(neighbor)
                members.append(neighbor)

    return tuple(members)


class PlanarityConstraintBuilder:
    """Finds the planar fragments of a molecule, i.e. groups of atoms connected by
    aromatic, double or amide like bonds together with their direct neighbors."""

    @classmethod
    def _is_amide_like_bond(cls, graph: MoleculeGraph, bond_index: int) -> bool:
        bond = graph.bonds[bond_index]

        for hetero_atom, carbon in (
            (bond.atom1_index, bond.atom2_index),
            (bond.atom2_index, bond.atom1_index),
        ):
            if graph.atomic_number(hetero_atom) not in (7, 8):
                continue
            if graph.atomic_number(carbon) != 6:
                continue

            if any(
                graph.bonds[carbon_bond].order == 2
                and graph.atomic_number(neighbor) == 8
                for neighbor, carbon_bond in graph.neighbors(carbon)
            ):
                return True

        return False

    @classmethod
    def is_flat_bond(cls, graph: MoleculeGraph, bond_index: int) -> bool:
        """Returns whether a bond forces its atoms and their neighbors into a
        plane."""

        bond = graph.bonds[bond_index]

        if bond.is_aromatic:
            return True

        if bond.order > 1:
            return (
                graph.atomic_number(bond.atom1_index) <= 8
                and graph.atomic_number(bond.atom2_index) <= 8
            )

        return cls._is_amide_like_bond(graph, bond_index)

    @classmethod
    def is_weak_flat_bond(cls, graph: MoleculeGraph, bond_index: int) -> bool:
        """Returns whether a bond only weakly prefers a planar arrangement, as is
        the case for the bond between an aromatic ring and an N or O substituent."""

        bond = graph.bonds[bond_index]

        if bond.is_aromatic or bond.order != 1:
            return False

        for aromatic_atom, substituent in (
            (bond.atom1_index, bond.atom2_index),
            (bond.atom2_index, bond.atom1_index),
        ):
            if graph.is_aromatic_atom(aromatic_atom) and graph.atomic_number(
                substituent
            ) in (7, 8):
                return True

        return False

    @classmethod
    def build(cls, graph: MoleculeGraph) -> List[GeometricConstraint]:
        """Builds one plane constraint per flat fragment and one weak plane
        constraint per weakly flat fragment of a graph."""

        constraints = []

        for constraint_type, predicate in (
            (ConstraintType.Plane, cls.is_flat_bond),
            (ConstraintType.WeakPlane, cls.is_weak_flat_bond),
        ):
            is_fragment_bond = [
                predicate(graph, bond_index) for bond_index in range(graph.n_bonds)
            ]

            for bond_index, bond in enumerate(graph.bonds):
                if not is_fragment_bond[bond_index]:
                    continue

                is_fragment_bond[bond_index] = False

                atoms = _grow_fragment(
                    graph,
                    (bond.atom1_index, bond.atom2_index),
                    is_fragment_bond,
                    stop_at_sp_atoms=True,
                )
                constraints.append(GeometricConstraint(constraint_type, atoms))

        _logger.debug(f"found {len(constraints)} planar fragments")

        return constraints


class LineConstraintBuilder:
    """Finds the linear fragments of a molecule, i.e. chains of sp hybridized atoms
    together with their direct neighbors."""

    @classmethod
    def _is_linear_atom(cls, graph: MoleculeGraph, index: int) -> bool:
        return graph.atom_pi(index) == 2 and graph.atomic_number(index) <= 8

    @classmethod
    def build(cls, graph: MoleculeGraph) -> List[GeometricConstraint]:
        """Builds one line constraint per chain of sp atoms in a graph."""

        constraints = []
        is_handled = [False] * graph.n_atoms

        for index in range(graph.n_atoms):
            if is_handled[index] or not cls._is_linear_atom(graph, index):
                continue

            is_handled[index] = True

            is_chain_bond = [
                cls._is_linear_atom(graph, bond.atom1_index)
                and cls._is_linear_atom(graph, bond.atom2_index)
                for bond in graph.bonds
            ]
            atoms = _grow_fragment(graph, (index,), is_chain_bond)

            for atom in atoms:
                if cls._is_linear_atom(graph, atom):
                    is_handled[atom] = True

            constraints.append(GeometricConstraint(ConstraintType.Line, atoms))

        _logger.debug(f"found {len(constraints)} linear fragments")

        return constraints


class StereoConstraintBuilder:
    """Builds a handedness constraint for each stereocenter with a declared
    parity."""

    @classmethod
    def build(cls, graph: MoleculeGraph) -> List[GeometricConstraint]:
        constraints = []

        for index, atom in enumerate(graph.atoms):
            if atom.parity not in (AtomParity.EVEN, AtomParity.ODD):
                continue

            neighbors = sorted(graph.neighbor_atoms(index))

            if len(neighbors) not in (3, 4):
                continue

            if atom.parity == AtomParity.ODD:
                neighbors[0], neighbors[1] = neighbors[1], neighbors[0]

            constraints.append(
                GeometricConstraint(ConstraintType.Stereo, (*neighbors, index))
            )

        _logger.debug(f"found {len(constraints)} stereo centers")

        return constraints
