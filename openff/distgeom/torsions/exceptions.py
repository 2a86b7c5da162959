"""Exceptions raised by the torsion knowledge base"""
from openff.distgeom.utilities.exceptions import DistGeomException


class TorsionDBError(DistGeomException):
    """An exception raised when the torsion knowledge base is malformed or is
    queried for data which has not been loaded."""
