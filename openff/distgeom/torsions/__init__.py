"""Look up and classify the torsion angles of rotatable bonds"""

from openff.distgeom.torsions._torsiondb import (
    TorsionDB,
    TorsionInfo,
    TorsionMode,
    TorsionStrain,
    TorsionSymmetry,
)
from openff.distgeom.torsions._torsions import (
    assign_torsion_strains,
    atom_token,
    calculate_torsion,
    calculate_torsion_extended,
    calculate_virtual_torsion,
    extended_atom_sequence,
    find_rear_atoms,
    find_rotatable_bonds,
    is_pseudo_rotatable_bond,
    torsion_atoms,
    torsion_fragment_id,
)

__all__ = [
    "TorsionDB",
    "TorsionInfo",
    "TorsionMode",
    "TorsionStrain",
    "TorsionSymmetry",
    "assign_torsion_strains",
    "atom_token",
    "calculate_torsion",
    "calculate_torsion_extended",
    "calculate_virtual_torsion",
    "extended_atom_sequence",
    "find_rear_atoms",
    "find_rotatable_bonds",
    "is_pseudo_rotatable_bond",
    "torsion_atoms",
    "torsion_fragment_id",
]
