"""Classify rotatable bonds and measure their torsion angles."""
import math
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from openff.distgeom.molecule import AtomParity, MoleculeGraph
from openff.distgeom.torsions._torsiondb import TorsionDB, TorsionStrain
from openff.distgeom.utilities import geometry, permutation_parity

if TYPE_CHECKING:
    from openff.distgeom.conformers import Conformer

MAX_SP_CHAIN_LENGTH = 15
"""The maximum number of bonds spanned by a chain of sp hybridized atoms."""

_VIRTUAL_ATOM = -1


def _is_linear_atom(graph: MoleculeGraph, index: int) -> bool:
    return (
        graph.atom_pi(index) == 2
        and graph.heavy_degree(index) == 2
        and graph.atomic_number(index) < 10
    )


def _heavy_neighbors(graph: MoleculeGraph, index: int) -> List[Tuple[int, int]]:
    return [
        (neighbor, bond_index)
        for neighbor, bond_index in graph.neighbors(index)
        if graph.atomic_number(neighbor) > 1
    ]


def atom_token(graph: MoleculeGraph, index: int) -> str:
    """Returns a short string describing the environment of an atom, made of its
    element symbol, its hybridization (1, 2 or 3) and an ``a`` if it is aromatic,
    e.g. ``C2a`` for an aromatic carbon."""

    is_aromatic = graph.is_aromatic_atom(index)
    n_pi = graph.atom_pi(index)

    hybridization = 1 if n_pi == 2 else 2 if (n_pi == 1 or is_aromatic) else 3

    return (
        f"{graph.atoms[index].symbol}{hybridization}{'a' if is_aromatic else ''}"
    )


def _local_orientation(
    graph: MoleculeGraph, center: int, partner: int, terminal: int
) -> Optional[int]:
    """Returns the handedness (+1 / -1) of a stereocenter expressed relative to the
    ordered neighbours ``(partner, terminal, others...)``, or ``None`` if the
    remaining neighbours can not be told apart."""

    parity = graph.atoms[center].parity

    if parity not in (AtomParity.EVEN, AtomParity.ODD):
        return None

    others = [
        neighbor
        for neighbor in graph.neighbor_atoms(center)
        if neighbor not in (partner, terminal)
    ]

    if len(others) == 0 or len(others) > 2:
        return None

    if len(others) == 2:
        tokens = [atom_token(graph, other) for other in others]

        if tokens[0] == tokens[1]:
            return None

        others = [other for _, other in sorted(zip(tokens, others))]

    sign = 1 if parity == AtomParity.EVEN else -1
    return sign * permutation_parity([partner, terminal, *others])


def torsion_fragment_id(graph: MoleculeGraph, atoms: Sequence[int]) -> Optional[str]:
    """Builds the canonical identifier of the fragment defined by a four atom
    strand, which is used as the key into a ``TorsionDB``.

    The identifier has the form ``t0.c0-c1.t1`` where ``c0`` and ``c1`` are the
    tokens of the central atoms and ``t0`` / ``t1`` those of the terminal atoms,
    written in whichever direction sorts first. A trailing ``>`` or ``<`` is
    appended when a central atom is a stereocenter.

    Parameters
    ----------
    graph
        The molecular graph.
    atoms
        The indices of the four atoms ``(t0, c0, c1, t1)``.

    Returns
    -------
        The identifier, or ``None`` if a central atom is a stereocenter of
        unknown configuration.
    """

    tokens = [atom_token(graph, index) for index in atoms]

    forward = f"{tokens[0]}.{tokens[1]}-{tokens[2]}.{tokens[3]}"
    backward = f"{tokens[3]}.{tokens[2]}-{tokens[1]}.{tokens[0]}"

    strand = list(atoms) if forward <= backward else list(atoms)[::-1]
    torsion_id = min(forward, backward)

    for center, partner, terminal in (
        (strand[1], strand[2], strand[0]),
        (strand[2], strand[1], strand[3]),
    ):
        if graph.atoms[center].parity == AtomParity.UNKNOWN:
            return None

        orientation = _local_orientation(graph, center, partner, terminal)

        if orientation is not None:
            return torsion_id + (">" if orientation > 0 else "<")

    return torsion_id


def find_rotatable_bonds(
    graph: MoleculeGraph, skip_all_ring_bonds: bool = False
) -> List[bool]:
    """Locates the rotatable bonds of a molecule, i.e. non-aromatic single bonds
    which are not in a ring with five or fewer members and whose atoms both carry
    at least one more heavy neighbour.

    For chains of sp hybridized atoms only the terminal single bond connecting the
    smaller substituent is considered rotatable, and no bond at all if one end of
    the chain carries no further heavy atom.

    Parameters
    ----------
    graph
        The molecular graph.
    skip_all_ring_bonds
        Whether bonds in rings of any size should be considered not rotatable.

    Returns
    -------
        A flag per bond which is true if the bond is rotatable.
    """

    ring_sizes = graph.bond_ring_sizes()

    is_rotatable = [
        bond.order == 1
        and not bond.is_aromatic
        and graph.heavy_degree(bond.atom1_index) > 1
        and graph.heavy_degree(bond.atom2_index) > 1
        and not (skip_all_ring_bonds and ring_sizes[bond_index] > 0)
        and not (0 < ring_sizes[bond_index] <= 5)
        for bond_index, bond in enumerate(graph.bonds)
    ]

    bond_handled = [False] * graph.n_bonds

    for bond_index, bond in enumerate(graph.bonds):
        if not is_rotatable[bond_index] or bond_handled[bond_index]:
            continue

        central_atoms = [bond.atom1_index, bond.atom2_index]
        rear_atoms = [bond.atom2_index, bond.atom1_index]

        n_linear_atoms = 0

        for i in range(2):
            while _is_linear_atom(graph, central_atoms[i]):
                neighbors = _heavy_neighbors(graph, central_atoms[i])

                for neighbor, neighbor_bond in neighbors:
                    if neighbor == rear_atoms[i]:
                        continue

                    if graph.bonds[neighbor_bond].order == 1:
                        is_rotatable[neighbor_bond] = False

                    rear_atoms[i] = central_atoms[i]
                    central_atoms[i] = neighbor

                    n_linear_atoms += 1
                    break

        if n_linear_atoms == 0:
            continue

        is_rotatable[bond_index] = False

        if (
            graph.heavy_degree(central_atoms[0]) <= 1
            or graph.heavy_degree(central_atoms[1]) <= 1
        ):
            continue

        substituent_sizes = [
            graph.substituent_size(rear_atoms[i], central_atoms[i]) for i in range(2)
        ]
        i = 0 if substituent_sizes[0] < substituent_sizes[1] else 1

        relevant_bond = graph.bond_index(rear_atoms[i], central_atoms[i])

        bond_handled[relevant_bond] = True
        is_rotatable[relevant_bond] = True

    return is_rotatable


def is_pseudo_rotatable_bond(graph: MoleculeGraph, bond_index: int) -> bool:
    """Returns whether a single bond in a chain of sp hybridized atoms only
    produces a torsion which is redundant with that of another bond in the chain,
    or which is undefined because the chain ends without a further atom."""

    bond = graph.bonds[bond_index]

    for atom, rear_atom in (
        (bond.atom1_index, bond.atom2_index),
        (bond.atom2_index, bond.atom1_index),
    ):
        while _is_linear_atom(graph, atom):
            for neighbor, neighbor_bond in _heavy_neighbors(graph, atom):
                if neighbor == rear_atom:
                    continue

                if graph.heavy_degree(neighbor) == 1:
                    return True

                if graph.bonds[neighbor_bond].order == 1 and neighbor_bond < bond_index:
                    return True

                rear_atom, atom = atom, neighbor
                break

    return False


def find_rear_atoms(graph: MoleculeGraph, atoms: Sequence[int]) -> Tuple[int, int]:
    """Returns the atoms adjacent to the two central atoms of a (possibly sp chain
    extended) torsion strand, along the path that connects them."""

    if graph.bond_index(atoms[1], atoms[2]) is not None:
        return atoms[2], atoms[1]

    path = graph.shortest_path(atoms[1], atoms[2], MAX_SP_CHAIN_LENGTH)
    if path is None:
        raise ValueError("The central atoms of the strand are not connected.")

    return path[1], path[-2]


def extended_atom_sequence(graph: MoleculeGraph, atoms: Sequence[int]) -> List[int]:
    """Expands a torsion strand whose central atoms are separated by a chain of sp
    hybridized atoms into the full sequence of atoms along the strand."""

    if graph.bond_index(atoms[1], atoms[2]) is not None:
        return list(atoms)

    path = graph.shortest_path(atoms[1], atoms[2], MAX_SP_CHAIN_LENGTH)
    if path is None:
        raise ValueError("The central atoms of the strand are not connected.")

    return [atoms[0], *path, atoms[3]]


def _coordinates(conformer: "Conformer", index: int) -> Tuple[float, float, float]:
    return conformer.x[index], conformer.y[index], conformer.z[index]


def calculate_torsion(conformer: "Conformer", atoms: Sequence[int]) -> float:
    """Calculates the signed torsion [rad] of a four atom strand in a conformer, in
    the range -pi <= torsion <= pi."""

    return geometry.calculate_torsion(
        *(_coordinates(conformer, index) for index in atoms)
    )


def calculate_virtual_torsion(angles: Sequence[float]) -> float:
    """Returns the torsion [rad] of a virtual terminal atom lying opposite to the
    two real terminal atoms whose torsions are given."""

    mean_angle = (angles[0] + angles[1]) / 2.0

    if abs(angles[1] - angles[0]) > math.pi:
        return mean_angle

    return mean_angle + math.pi if mean_angle < 0 else mean_angle - math.pi


def calculate_torsion_extended(
    graph: MoleculeGraph, conformer: "Conformer", atoms: Sequence[int]
) -> float:
    """Calculates a signed torsion like ``calculate_torsion``, however the terminal
    atoms may be given as -1 to refer to a virtual atom in the third position of a
    central atom whose two other neighbours are equivalent.

    Returns
    -------
        The torsion [rad] in the range -pi <= torsion <= pi.
    """

    atoms = list(atoms)

    if atoms[0] != _VIRTUAL_ATOM and atoms[3] != _VIRTUAL_ATOM:
        return calculate_torsion(conformer, atoms)

    rear_atoms = find_rear_atoms(graph, atoms)

    def _terminal_candidates(central: int, rear: int) -> List[int]:
        candidates = [
            neighbor for neighbor in graph.neighbor_atoms(central) if neighbor != rear
        ]
        if len(candidates) != 2:
            raise ValueError(
                f"A virtual atom requires exactly two neighbours of atom {central} "
                f"other than atom {rear}."
            )
        return candidates

    for i in range(2):
        if atoms[3 * i] == _VIRTUAL_ATOM:
            continue

        # only one of the terminal atoms is virtual
        central, terminal = 2 - i, 3 - 3 * i
        torsions = []

        for candidate in _terminal_candidates(atoms[central], rear_atoms[1 - i]):
            atoms[terminal] = candidate
            torsions.append(calculate_torsion(conformer, atoms))

        return calculate_virtual_torsion(torsions)

    outer_torsions = []

    for terminal_1 in _terminal_candidates(atoms[1], rear_atoms[0]):
        inner_torsions = []

        for terminal_2 in _terminal_candidates(atoms[2], rear_atoms[1]):
            inner_torsions.append(
                calculate_torsion(
                    conformer, [terminal_1, atoms[1], atoms[2], terminal_2]
                )
            )

        outer_torsions.append(calculate_virtual_torsion(inner_torsions))

    return calculate_virtual_torsion(outer_torsions)


def torsion_atoms(graph: MoleculeGraph, bond_index: int) -> Optional[List[int]]:
    """Selects the four atoms which define the torsion of a rotatable bond. Chains
    of sp hybridized atoms are skipped so that the central atoms are the first
    non-linear atoms on either side.

    Returns
    -------
        The ``(t0, c0, c1, t1)`` atom indices, or ``None`` if either central atom
        carries no or more than two further heavy neighbours.
    """

    bond = graph.bonds[bond_index]

    central_atoms = [bond.atom1_index, bond.atom2_index]
    rear_atoms = [bond.atom2_index, bond.atom1_index]

    for i in range(2):
        n_steps = 0

        while (
            _is_linear_atom(graph, central_atoms[i])
            and n_steps < MAX_SP_CHAIN_LENGTH
        ):
            neighbor = next(
                neighbor
                for neighbor, _ in _heavy_neighbors(graph, central_atoms[i])
                if neighbor != rear_atoms[i]
            )
            rear_atoms[i], central_atoms[i] = central_atoms[i], neighbor
            n_steps += 1

    terminal_atoms = []

    for central_atom, rear_atom in zip(central_atoms, rear_atoms):
        candidates = [
            neighbor
            for neighbor, _ in _heavy_neighbors(graph, central_atom)
            if neighbor != rear_atom
        ]

        if len(candidates) == 0 or len(candidates) > 2:
            return None

        terminal_atoms.append(
            min(candidates, key=lambda index: (atom_token(graph, index), index))
        )

    return [terminal_atoms[0], central_atoms[0], central_atoms[1], terminal_atoms[1]]


def assign_torsion_strains(
    graph: MoleculeGraph,
    conformer: "Conformer",
    torsion_db: Optional[TorsionDB] = None,
) -> Dict[int, TorsionStrain]:
    """Measures the torsion of every rotatable bond in a conformer, remembers it on
    the conformer and classifies how strained it is.

    Parameters
    ----------
    graph
        The molecular graph.
    conformer
        The conformer to measure. Its bond torsions will be updated in place.
    torsion_db
        The knowledge base to classify the torsions with. By default the shipped
        knowledge base is used.

    Returns
    -------
        The strain class of each rotatable bond keyed by bond index.
    """

    torsion_db = TorsionDB.default() if torsion_db is None else torsion_db

    strains = {}

    for bond_index, is_rotatable in enumerate(find_rotatable_bonds(graph)):
        if not is_rotatable:
            continue

        atoms = torsion_atoms(graph, bond_index)

        if atoms is None:
            continue

        angle = calculate_torsion(conformer, atoms)
        conformer.set_bond_torsion(bond_index, int(round(math.degrees(angle))) % 360)

        torsion_id = torsion_fragment_id(graph, atoms)

        strains[bond_index] = (
            TorsionStrain.NOT_FOUND
            if torsion_id is None
            else torsion_db.torsion_strain_class(torsion_id, angle)
        )

    return strains
