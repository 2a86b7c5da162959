"""Common exceptions raised by the framework."""


class DistGeomException(Exception):
    """The base exception from which most custom exceptions should inherit."""
