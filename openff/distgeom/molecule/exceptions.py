"""Exceptions raised when building molecular graphs"""
from openff.distgeom.utilities.exceptions import DistGeomException


class MoleculeGraphError(DistGeomException):
    """An exception raised when a set of atoms and bonds does not describe a valid
    molecular graph."""
