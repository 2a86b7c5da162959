"""The read-only molecular graph that constraints are compiled from"""

from openff.distgeom.molecule._molecule import (
    Atom,
    AtomParity,
    Bond,
    BondParity,
    MoleculeGraph,
)

__all__ = ["Atom", "AtomParity", "Bond", "BondParity", "MoleculeGraph"]
