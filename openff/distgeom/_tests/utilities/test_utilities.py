import os

import pytest

from openff.distgeom.utilities import get_data_file_path, permutation_parity


def test_get_data_file_path():
    file_path = get_data_file_path(os.path.join("torsions", "torsion-ids.txt"))
    assert os.path.isfile(file_path)


def test_get_data_file_path_missing():
    with pytest.raises(FileNotFoundError):
        get_data_file_path("missing-file.txt")


@pytest.mark.parametrize(
    "values, expected_parity",
    [([0, 1, 2], 1), ([1, 0, 2], -1), ([2, 0, 1], 1), ([3, 2, 1, 0], 1), ([5], 1)],
)
def test_permutation_parity(values, expected_parity):
    assert permutation_parity(values) == expected_parity
