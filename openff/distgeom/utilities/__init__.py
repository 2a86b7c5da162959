from openff.distgeom.utilities.utilities import get_data_file_path, permutation_parity

__all__ = ["get_data_file_path", "permutation_parity"]
