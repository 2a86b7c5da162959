from openff.distgeom.utilities.exceptions import DistGeomException


class ConstraintError(DistGeomException):
    """An exception raised when the constraints of a molecule could not be
    compiled."""
