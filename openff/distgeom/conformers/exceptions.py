"""Exceptions raised when generating conformers"""
from openff.distgeom.utilities.exceptions import DistGeomException


class ConformerGenerationError(DistGeomException):
    """An exception raised when conformers could not be generated for a
    molecule, or were requested before being generated."""
