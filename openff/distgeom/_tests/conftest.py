from typing import List, Sequence, Tuple

import pytest

from openff.distgeom.molecule import (
    Atom,
    AtomParity,
    Bond,
    BondParity,
    MoleculeGraph,
)


def _build_graph(
    atomic_numbers: Sequence[int],
    bonds: Sequence[Tuple[int, int, int]],
    aromatic_atoms: Sequence[int] = (),
    aromatic_bonds: Sequence[int] = (),
    atom_parities=None,
    bond_parities=None,
) -> MoleculeGraph:
    atom_parities = {} if atom_parities is None else atom_parities
    bond_parities = {} if bond_parities is None else bond_parities

    atoms: List[Atom] = [
        Atom(
            atomic_number=atomic_number,
            is_aromatic=index in aromatic_atoms,
            parity=atom_parities.get(index, AtomParity.NONE),
        )
        for index, atomic_number in enumerate(atomic_numbers)
    ]
    graph_bonds = [
        Bond(
            atom1_index=index_a,
            atom2_index=index_b,
            order=order,
            is_aromatic=bond_index in aromatic_bonds,
            parity=bond_parities.get(bond_index, BondParity.NONE),
        )
        for bond_index, (index_a, index_b, order) in enumerate(bonds)
    ]

    return MoleculeGraph(atoms, graph_bonds)


def _benzene_bonds(offset: int = 0) -> List[Tuple[int, int, int]]:
    return [
        (offset + i, offset + (i + 1) % 6, 2 if i % 2 == 0 else 1) for i in range(6)
    ]


@pytest.fixture()
def build_graph():
    return _build_graph


@pytest.fixture()
def ethane() -> MoleculeGraph:
    return _build_graph([6, 6], [(0, 1, 1)])


@pytest.fixture()
def butane() -> MoleculeGraph:
    return _build_graph([6, 6, 6, 6], [(0, 1, 1), (1, 2, 1), (2, 3, 1)])


@pytest.fixture()
def benzene() -> MoleculeGraph:
    return _build_graph(
        [6] * 6, _benzene_bonds(), aromatic_atoms=range(6), aromatic_bonds=range(6)
    )


@pytest.fixture()
def anisole() -> MoleculeGraph:
    return _build_graph(
        [6] * 6 + [8, 6],
        _benzene_bonds() + [(0, 6, 1), (6, 7, 1)],
        aromatic_atoms=range(6),
        aromatic_bonds=range(6),
    )


@pytest.fixture()
def butan_2_ol() -> MoleculeGraph:
    """A butan-2-ol skeleton whose stereocenter (atom 0) has an even parity."""
    return _build_graph(
        [6, 6, 6, 8, 6],
        [(0, 1, 1), (0, 2, 1), (0, 3, 1), (2, 4, 1)],
        atom_parities={0: AtomParity.EVEN},
    )


@pytest.fixture()
def n_methylacetamide() -> MoleculeGraph:
    return _build_graph(
        [6, 6, 8, 7, 6], [(0, 1, 1), (1, 2, 2), (1, 3, 1), (3, 4, 1)]
    )


@pytest.fixture()
def propyne() -> MoleculeGraph:
    return _build_graph([6, 6, 6], [(0, 1, 1), (1, 2, 3)])


@pytest.fixture()
def but_2_yne() -> MoleculeGraph:
    return _build_graph([6, 6, 6, 6], [(0, 1, 1), (1, 2, 3), (2, 3, 1)])


@pytest.fixture()
def penta_2_3_diene() -> MoleculeGraph:
    return _build_graph(
        [6, 6, 6, 6, 6], [(0, 1, 1), (1, 2, 2), (2, 3, 2), (3, 4, 1)]
    )


@pytest.fixture()
def e_but_2_ene() -> MoleculeGraph:
    return _build_graph(
        [6, 6, 6, 6],
        [(0, 1, 1), (1, 2, 2), (2, 3, 1)],
        bond_parities={1: BondParity.E},
    )


@pytest.fixture()
def z_but_2_ene() -> MoleculeGraph:
    return _build_graph(
        [6, 6, 6, 6],
        [(0, 1, 1), (1, 2, 2), (2, 3, 1)],
        bond_parities={1: BondParity.Z},
    )


@pytest.fixture()
def cyclohexane() -> MoleculeGraph:
    return _build_graph([6] * 6, [(i, (i + 1) % 6, 1) for i in range(6)])
