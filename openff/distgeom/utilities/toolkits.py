"""Helpers for converting cheminformatics toolkit molecules into graphs"""
from typing import TYPE_CHECKING, List, Sequence, Tuple

from openff.utilities import requires_package

from openff.distgeom.utilities.utilities import permutation_parity

if TYPE_CHECKING:
    from openff.distgeom.molecule import Atom, Bond


@requires_package("rdkit")
def _rd_atom_parity(rd_atom):
    from rdkit import Chem

    from openff.distgeom.molecule import AtomParity

    chiral_tag = rd_atom.GetChiralTag()

    if chiral_tag not in (
        Chem.ChiralType.CHI_TETRAHEDRAL_CW,
        Chem.ChiralType.CHI_TETRAHEDRAL_CCW,
    ):
        return (
            AtomParity.UNKNOWN
            if rd_atom.HasProp("_ChiralityPossible")
            else AtomParity.NONE
        )

    neighbor_indices = [
        bond.GetOtherAtomIdx(rd_atom.GetIdx()) for bond in rd_atom.GetBonds()
    ]

    if len(neighbor_indices) < 3:
        return AtomParity.NONE

    # CW means det(n0 - c, n1 - c, n2 - c) < 0 for the neighbours in bond order.
    sign = -1 if chiral_tag == Chem.ChiralType.CHI_TETRAHEDRAL_CW else 1
    sign *= permutation_parity(neighbor_indices)

    return AtomParity.EVEN if sign > 0 else AtomParity.ODD


@requires_package("rdkit")
def _rd_bond_parity(rd_bond, symmetry_classes: Sequence[int]):
    from rdkit import Chem

    from openff.distgeom.molecule import BondParity

    if rd_bond.GetBondType() != Chem.BondType.DOUBLE or rd_bond.GetIsAromatic():
        return BondParity.NONE

    rd_atoms = (rd_bond.GetBeginAtom(), rd_bond.GetEndAtom())

    substituents = [
        sorted(
            neighbor.GetIdx()
            for neighbor in rd_atom.GetNeighbors()
            if neighbor.GetIdx() != rd_atoms[1 - i].GetIdx()
        )
        for i, rd_atom in enumerate(rd_atoms)
    ]

    for side in substituents:
        if len(side) == 0 or (
            len(side) == 2 and symmetry_classes[side[0]] == symmetry_classes[side[1]]
        ):
            return BondParity.NONE

    stereo = rd_bond.GetStereo()

    if stereo in (Chem.BondStereo.STEREOE, Chem.BondStereo.STEREOTRANS):
        is_trans = True
    elif stereo in (Chem.BondStereo.STEREOZ, Chem.BondStereo.STEREOCIS):
        is_trans = False
    else:
        return BondParity.UNKNOWN

    stereo_atoms = list(rd_bond.GetStereoAtoms())

    if len(stereo_atoms) != 2:
        return BondParity.UNKNOWN

    if stereo_atoms[0] not in substituents[0]:
        stereo_atoms = stereo_atoms[::-1]

    for side, stereo_atom in zip(substituents, stereo_atoms):
        if stereo_atom != side[0]:
            is_trans = not is_trans

    return BondParity.E if is_trans else BondParity.Z


@requires_package("rdkit")
def rd_molecule_to_graph_records(
    rd_molecule, include_hydrogens: bool = False
) -> Tuple[List["Atom"], List["Bond"]]:
    """Converts an RDKit molecule into the atom and bond records of a graph.

    Parameters
    ----------
    rd_molecule
        The molecule to convert. It will not be modified.
    include_hydrogens
        Whether to retain explicit hydrogen atoms. If false, hydrogens are removed
        before the conversion and the indices of the graph will follow those of
        the hydrogen depleted molecule.

    Returns
    -------
        The atom and bond records.
    """
    from rdkit import Chem

    from openff.distgeom.molecule import Atom, Bond

    rd_molecule = Chem.Mol(rd_molecule)

    if not include_hydrogens:
        rd_molecule = Chem.RemoveHs(rd_molecule)

    Chem.AssignStereochemistry(
        rd_molecule, cleanIt=True, force=True, flagPossibleStereoCenters=True
    )
    symmetry_classes = list(Chem.CanonicalRankAtoms(rd_molecule, breakTies=False))

    Chem.Kekulize(rd_molecule, clearAromaticFlags=False)

    atoms = [
        Atom(
            atomic_number=rd_atom.GetAtomicNum(),
            is_aromatic=rd_atom.GetIsAromatic(),
            parity=_rd_atom_parity(rd_atom),
        )
        for rd_atom in rd_molecule.GetAtoms()
    ]
    bonds = [
        Bond(
            atom1_index=rd_bond.GetBeginAtomIdx(),
            atom2_index=rd_bond.GetEndAtomIdx(),
            order=max(1, min(3, int(rd_bond.GetBondTypeAsDouble()))),
            is_aromatic=rd_bond.GetIsAromatic(),
            parity=_rd_bond_parity(rd_bond, symmetry_classes),
        )
        for rd_bond in rd_molecule.GetBonds()
    ]

    return atoms, bonds
