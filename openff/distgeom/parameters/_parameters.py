"""Simple models of ideal bond lengths, bond angles and atomic radii."""
import math
from enum import Enum
from typing import Dict, List, Tuple

from openff.units.elements import SYMBOLS

from openff.distgeom.molecule import MoleculeGraph


class VdWRadiiType(Enum):
    Bondi = "Bondi"


_BONDI_RADII = {
    "H": 1.20,
    "C": 1.70,
    "N": 1.55,
    "O": 1.52,
    "F": 1.47,
    "Si": 2.10,
    "P": 1.80,
    "S": 1.80,
    "Cl": 1.75,
    "Br": 1.85,
    "I": 1.98,
    "He": 1.40,
    "Ne": 1.54,
    "Ar": 1.88,
    "Li": 1.82,
    "Na": 2.27,
    "Mg": 1.73,
    "K": 2.75,
    "Se": 1.90,
    "As": 1.85,
}

DEFAULT_VDW_RADIUS = 2.0
"""The radius [A] assigned to elements without a tabulated vdW radius."""

# Covalent radii [A] of P. Pyykkö et al. for single, double and triple bonds.
_COVALENT_RADII = {
    "H": (0.32, 0.32, 0.32),
    "B": (0.85, 0.78, 0.73),
    "C": (0.75, 0.67, 0.60),
    "N": (0.71, 0.60, 0.54),
    "O": (0.63, 0.57, 0.53),
    "F": (0.64, 0.59, 0.53),
    "Si": (1.16, 1.07, 1.02),
    "P": (1.11, 1.02, 0.94),
    "S": (1.03, 0.94, 0.95),
    "Cl": (0.99, 0.95, 0.93),
    "Se": (1.16, 1.07, 1.07),
    "Br": (1.14, 1.09, 1.10),
    "I": (1.33, 1.29, 1.25),
}
_AROMATIC_RADII = {"C": 0.695, "N": 0.655, "O": 0.665, "S": 1.010}

_DEFAULT_COVALENT_RADIUS = 1.20

_CONJUGATION_SHORTENING = 0.03
_SP_SHORTENING = 0.04

TETRAHEDRAL_ANGLE = math.radians(109.47)


def compute_vdw_radii(
    graph: MoleculeGraph, radii_type: VdWRadiiType = VdWRadiiType.Bondi
) -> List[float]:
    """Computes the vdW radii of each atom in a molecule

    Parameters
    ----------
    graph
        The molecule containing the atoms
    radii_type
        The type of vdW radii to compute.

    Returns
    -------
        A list of the vdW radii [A] of each atom.
    """

    if radii_type == VdWRadiiType.Bondi:
        return [
            _BONDI_RADII.get(SYMBOLS[atom.atomic_number], DEFAULT_VDW_RADIUS)
            for atom in graph.atoms
        ]
    else:
        raise NotImplementedError()


class BondLengthModel:
    """Estimates ideal bond lengths from tabulated covalent radii, with small
    corrections for aromatic, conjugated and sp hybridized bonds."""

    @classmethod
    def _covalent_radius(cls, symbol: str, order: int, is_aromatic: bool) -> float:
        if is_aromatic and symbol in _AROMATIC_RADII:
            return _AROMATIC_RADII[symbol]

        if symbol not in _COVALENT_RADII:
            return _DEFAULT_COVALENT_RADIUS

        single, double, triple = _COVALENT_RADII[symbol]

        if is_aromatic:
            return (single + double) / 2.0

        return (single, double, triple)[order - 1]

    @classmethod
    def bond_length(cls, graph: MoleculeGraph, bond_index: int) -> float:
        """Returns the ideal length [A] of a bond."""

        bond = graph.bonds[bond_index]
        atoms = (bond.atom1_index, bond.atom2_index)

        length = sum(
            cls._covalent_radius(
                graph.atoms[index].symbol, bond.order, bond.is_aromatic
            )
            for index in atoms
        )

        if bond.order == 1 and not bond.is_aromatic:
            n_pi = [graph.atom_pi(index) for index in atoms]

            if any(value == 2 for value in n_pi):
                length -= _SP_SHORTENING
            elif all(value > 0 for value in n_pi):
                length -= _CONJUGATION_SHORTENING

        return length

    @classmethod
    def compute(cls, graph: MoleculeGraph) -> List[float]:
        """Computes the ideal length [A] of every bond in a graph."""
        return [
            cls.bond_length(graph, bond_index) for bond_index in range(graph.n_bonds)
        ]


class BondAngleModel:
    """Estimates ideal bond angles from the hybridization of the central atom, and
    from the sizes of the small rings that the angle is part of."""

    @classmethod
    def _default_angle(cls, graph: MoleculeGraph, center: int) -> float:
        n_pi = graph.atom_pi(center)

        if n_pi == 2:
            return math.pi

        if n_pi == 1 or graph.is_aromatic_atom(center):
            return math.radians(120.0)

        atomic_number = graph.atomic_number(center)

        if atomic_number == 7 and any(
            graph.atom_pi(neighbor) > 0 for neighbor in graph.neighbor_atoms(center)
        ):
            # e.g. amide and aniline nitrogen atoms
            return math.radians(120.0)
        if atomic_number == 8 and graph.degree(center) == 2:
            return math.radians(110.0)
        if atomic_number == 16 and graph.degree(center) == 2:
            return math.radians(100.0)

        return TETRAHEDRAL_ANGLE

    @classmethod
    def _ring_angle(
        cls, graph: MoleculeGraph, center: int, n1: int, n2: int
    ) -> float:
        """Returns the angle [rad] imposed by the smallest 3-, 4- or 5-membered ring
        that contains both bonds, or zero if there is no such ring."""

        ring_size = 0

        for ring in graph.rings():
            if len(ring) > 5 or center not in ring:
                continue

            position = ring.index(center)
            ring_neighbors = {ring[position - 1], ring[(position + 1) % len(ring)]}

            if ring_neighbors == {n1, n2} and (ring_size == 0 or len(ring) < ring_size):
                ring_size = len(ring)

        if ring_size == 0:
            return 0.0
        if ring_size == 3:
            return math.radians(60.0)
        if ring_size == 4:
            return math.radians(90.0)

        is_flat = graph.atom_pi(center) > 0 or graph.is_aromatic_atom(center)
        return math.radians(108.0 if is_flat else 104.0)

    @classmethod
    def compute(cls, graph: MoleculeGraph) -> Dict[Tuple[int, int, int], float]:
        """Computes the ideal angle [rad] between every pair of bonds which share an
        atom.

        Returns
        -------
            The angles keyed by ``(center, neighbor_a, neighbor_b)`` with
            ``neighbor_a < neighbor_b``.
        """

        angles = {}

        for center in range(graph.n_atoms):
            neighbors = sorted(graph.neighbor_atoms(center))

            if len(neighbors) < 2:
                continue

            default_angle = cls._default_angle(graph, center)

            pairs = [
                (neighbors[i], neighbors[j])
                for i in range(len(neighbors))
                for j in range(i + 1, len(neighbors))
            ]
            ring_angles = {
                pair: cls._ring_angle(graph, center, *pair) for pair in pairs
            }

            is_trigonal = len(neighbors) == 3 and default_angle == math.radians(120.0)
            ring_pairs = [pair for pair in pairs if ring_angles[pair] > 0.0]

            for pair in pairs:
                if ring_angles[pair] > 0.0:
                    angle = ring_angles[pair]
                elif is_trigonal and len(ring_pairs) == 1:
                    # the two exocyclic angles share what the ring leaves of 360
                    angle = (2.0 * math.pi - ring_angles[ring_pairs[0]]) / 2.0
                else:
                    angle = default_angle

                angles[(center, *pair)] = angle

        return angles
