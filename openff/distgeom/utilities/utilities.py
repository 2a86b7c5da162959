import errno
import os
from importlib.resources import files
from typing import Sequence


def get_data_file_path(relative_path: str) -> str:
    """Get the full path to one of the files in the data directory.

    Parameters
    ----------
    relative_path : str
        The relative path of the file to load.

    Returns
    -------
        The absolute path to the file.

    Raises
    ------
    FileNotFoundError
    """

    file_path = str(files("openff.distgeom") / os.path.join("data", relative_path))

    if not os.path.exists(file_path):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), file_path)

    return file_path


def permutation_parity(values: Sequence[int]) -> int:
    """Returns +1 if sorting ``values`` requires an even number of swaps and -1
    otherwise."""

    values = list(values)
    parity = 1

    for i in range(len(values)):
        for j in range(i + 1, len(values)):
            if values[i] > values[j]:
                parity = -parity

    return parity
