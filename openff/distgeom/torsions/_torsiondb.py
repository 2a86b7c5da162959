"""A statistical knowledge base of preferred torsion angles."""
import functools
import logging
import math
import os
import threading
from enum import Enum, IntFlag
from typing import Dict, List, Optional, Tuple

from openff.distgeom.torsions.exceptions import TorsionDBError
from openff.distgeom.utilities import get_data_file_path

_logger = logging.getLogger(__name__)

_TORSION_FILES = {
    "ids": "torsion-ids.txt",
    "angles": "torsion-angles.txt",
    "ranges": "torsion-ranges.txt",
    "frequencies": "torsion-frequencies.txt",
    "bins": "torsion-bins.txt",
}

N_BINS = 72
"""The number of 5 degree bins in a full circle torsion histogram."""


class TorsionMode(IntFlag):
    """The parts of the knowledge base which can be loaded."""

    ANGLES = 1
    RANGES = 2
    FREQUENCIES = 4
    BINS = 8
    ALL = 15


class TorsionStrain(Enum):
    """A coarse classification of how strained a torsion angle is."""

    NOT_FOUND = -1
    GREEN = 0
    YELLOW = 1
    RED = 2


class TorsionSymmetry(Enum):
    """The symmetry of the torsion distribution of a fragment, which is encoded by
    the trailing character of its identifier.

    * ``C1C1_OR_C1D1`` (``<`` / ``>``): no symmetry, e.g. a stereocenter on one side.
      Data covers the full circle.
    * ``C1D2`` (``-`` / ``+``): 0 -> 180 matches -180 -> 0. Data covers half a circle.
    * ``D1D1`` (no marker): 0 -> 180 matches 0 -> -180. Data covers 0 -> 180.
    * ``D1D2_OR_D2D2`` (``=``): 0 -> 90 matches 180 -> 90, 0 -> -90 and
      -180 -> -90. Data covers 0 -> 90.
    """

    C1C1_OR_C1D1 = "C1C1_OR_C1D1"
    C1D2 = "C1D2"
    D1D1 = "D1D1"
    D1D2_OR_D2D2 = "D1D2_OR_D2D2"


class TorsionInfo:
    """The statistics stored for a single fragment. Any of the fields may be
    ``None`` if the corresponding mode has not been loaded."""

    __slots__ = ("symmetry", "angles", "ranges", "frequencies", "bins")

    def __init__(self, symmetry: TorsionSymmetry):
        self.symmetry = symmetry

        self.angles: Optional[List[int]] = None
        self.ranges: Optional[List[Tuple[int, int]]] = None
        self.frequencies: Optional[List[int]] = None
        self.bins: Optional[List[int]] = None

    def inverted(self) -> "TorsionInfo":
        """Returns the statistics of the fragment with its stereocenter(s) inverted,
        i.e. with every angle mirrored to ``360 - angle``."""

        inverted = TorsionInfo(self.symmetry)

        if self.angles is not None:
            inverted.angles = [(360 - angle) % 360 for angle in reversed(self.angles)]
        if self.ranges is not None:
            inverted.ranges = [
                (360 - high, 360 - low) for low, high in reversed(self.ranges)
            ]
        if self.frequencies is not None:
            inverted.frequencies = list(reversed(self.frequencies))
        if self.bins is not None:
            n_bins = len(self.bins)
            inverted.bins = [self.bins[(-i) % n_bins] for i in range(n_bins)]

        return inverted

    def _mirror_bounds(self, upper: int) -> Tuple[int, int]:
        """Returns the slice of stored values which have a distinct mirror image,
        i.e. excluding values that lie on the mirror planes at 0 and ``upper``."""

        if self.angles is None:
            raise TorsionDBError(
                "The torsion angles must be loaded in order to expand the ranges and "
                "frequencies of symmetric fragments."
            )

        start = 1 if self.angles[0] == 0 else 0
        end = len(self.angles) - 1 if self.angles[-1] == upper else len(self.angles)

        return start, end

    def full_circle_angles(self) -> List[int]:
        """Returns the preferred angles (0 <= angle < 360) of the fragment, completing
        the stored half or quarter circle using the symmetry of the fragment."""

        angles = self.angles

        if self.symmetry == TorsionSymmetry.C1D2:
            return angles + [180 + angle for angle in angles]

        elif self.symmetry == TorsionSymmetry.D1D1:
            start, end = self._mirror_bounds(180)
            return angles + [360 - angles[i] for i in reversed(range(start, end))]

        elif self.symmetry == TorsionSymmetry.D1D2_OR_D2D2:
            start, end = self._mirror_bounds(90)
            mirrored = list(reversed(range(start, end)))

            return (
                angles
                + [180 - angles[i] for i in mirrored]
                + [180 + angle for angle in angles]
                + [360 - angles[i] for i in mirrored]
            )

        return list(angles)

    def full_circle_ranges(self) -> List[Tuple[int, int]]:
        """Returns the low and high limits of each peak with indices matching
        ``full_circle_angles``."""

        ranges = self.ranges

        if self.symmetry == TorsionSymmetry.C1D2:
            return ranges + [(180 + low, 180 + high) for low, high in ranges]

        elif self.symmetry == TorsionSymmetry.D1D1:
            start, end = self._mirror_bounds(180)
            return ranges + [
                (360 - ranges[i][1], 360 - ranges[i][0])
                for i in reversed(range(start, end))
            ]

        elif self.symmetry == TorsionSymmetry.D1D2_OR_D2D2:
            start, end = self._mirror_bounds(90)
            mirrored = list(reversed(range(start, end)))

            return (
                ranges
                + [(180 - ranges[i][1], 180 - ranges[i][0]) for i in mirrored]
                + [(180 + low, 180 + high) for low, high in ranges]
                + [(360 - ranges[i][1], 360 - ranges[i][0]) for i in mirrored]
            )

        return list(ranges)

    def full_circle_frequencies(self) -> List[int]:
        """Returns the relative frequencies [%] of each peak with indices matching
        ``full_circle_angles``."""

        frequencies = self.frequencies

        if self.symmetry == TorsionSymmetry.C1D2:
            return frequencies + frequencies

        elif self.symmetry == TorsionSymmetry.D1D1:
            start, end = self._mirror_bounds(180)
            return frequencies + [frequencies[i] for i in reversed(range(start, end))]

        elif self.symmetry == TorsionSymmetry.D1D2_OR_D2D2:
            start, end = self._mirror_bounds(90)
            mirrored = [frequencies[i] for i in reversed(range(start, end))]

            return frequencies + mirrored + frequencies + mirrored

        return list(frequencies)

    def full_circle_bins(self) -> List[int]:
        """Returns the 72 bin torsion histogram centered on 0, 5, ..., 355 degrees."""

        bins = self.bins

        if len(bins) == N_BINS:
            return list(bins)

        if self.symmetry == TorsionSymmetry.C1D2:
            return bins[:36] + bins[:36]

        elif self.symmetry == TorsionSymmetry.D1D1:
            return bins[:36] + [bins[36 - i] for i in range(36)]

        elif self.symmetry == TorsionSymmetry.D1D2_OR_D2D2:
            quarter = bins[:18]
            mirrored = [bins[18 - i] for i in range(18)]

            return quarter + mirrored + quarter + mirrored

        raise TorsionDBError(
            f"A {self.symmetry.value} fragment must store {N_BINS} bins, "
            f"found {len(bins)}."
        )


class TorsionDB:
    """A knowledge base which maps the identifier of a rotatable bond fragment onto
    the statistically preferred torsion angles of that fragment.

    Notes
    -----
    * The data for each mode is loaded at most once, the first time that it is
      requested by ``initialize``. Loading is guarded by a lock so that a single
      instance can be shared between threads.
    """

    def __init__(self, directory: Optional[str] = None):
        """

        Parameters
        ----------
        directory
            The directory containing the knowledge base text files. By default the
            tables shipped with this package are used.
        """

        self._directory = directory

        self._lock = threading.RLock()
        self._supported_modes = TorsionMode(0)

        self._torsions: Dict[str, TorsionInfo] = {}

    @classmethod
    @functools.lru_cache(maxsize=1)
    def default(cls) -> "TorsionDB":
        """Returns the process wide knowledge base built from the shipped tables."""

        torsion_db = cls()
        torsion_db.initialize(TorsionMode.ALL)

        return torsion_db

    @property
    def supported_modes(self) -> TorsionMode:
        return self._supported_modes

    def _file_path(self, key: str) -> str:
        if self._directory is None:
            return get_data_file_path(os.path.join("torsions", _TORSION_FILES[key]))

        return os.path.join(self._directory, _TORSION_FILES[key])

    def _read_lines(self, key: str) -> List[str]:
        with open(self._file_path(key)) as file:
            return [line.strip() for line in file if len(line.strip()) > 0]

    def initialize(self, mode: TorsionMode = TorsionMode.ALL):
        """Loads the parts of the knowledge base selected by ``mode`` which have not
        already been loaded.

        Raises
        ------
        TorsionDBError
            If the data files are malformed.
        """

        if mode & (TorsionMode.RANGES | TorsionMode.FREQUENCIES):
            mode |= TorsionMode.ANGLES

        with self._lock:
            mode = TorsionMode(mode & ~self._supported_modes)

            if mode == 0:
                return

            torsion_ids = self._read_lines("ids")

            parsers = {
                TorsionMode.ANGLES: ("angles", "angles", _parse_integers),
                TorsionMode.RANGES: ("ranges", "ranges", _parse_ranges),
                TorsionMode.FREQUENCIES: (
                    "frequencies",
                    "frequencies",
                    _parse_integers,
                ),
                TorsionMode.BINS: ("bins", "bins", _parse_integers),
            }

            for flag, (key, attribute, parser) in parsers.items():
                if not mode & flag:
                    continue

                lines = self._read_lines(key)

                if len(lines) != len(torsion_ids):
                    raise TorsionDBError(
                        f"The {_TORSION_FILES[key]} file contains {len(lines)} lines "
                        f"but {len(torsion_ids)} torsion ids were found."
                    )

                for torsion_id, line in zip(torsion_ids, lines):
                    torsion_info = self._torsions.get(torsion_id)

                    if torsion_info is None:
                        torsion_info = TorsionInfo(self.symmetry_type(torsion_id))
                        self._torsions[torsion_id] = torsion_info

                    try:
                        setattr(torsion_info, attribute, parser(line))
                    except ValueError as e:
                        raise TorsionDBError(
                            f"Could not parse the {key} of {torsion_id}: {line}"
                        ) from e

            self._supported_modes |= mode

            # mirrored entries must be rebuilt to pick up the newly loaded modes
            stored_ids = set(torsion_ids)

            for torsion_id in [
                torsion_id
                for torsion_id in self._torsions
                if self.is_inverted(torsion_id) and torsion_id not in stored_ids
            ]:
                del self._torsions[torsion_id]

            _logger.debug(
                f"loaded {mode!r} for {len(torsion_ids)} torsion fragments"
            )

    def _torsion_info(self, torsion_id: Optional[str]) -> Optional[TorsionInfo]:
        if torsion_id is None:
            return None

        torsion_info = self._torsions.get(torsion_id)

        if torsion_info is not None or not self.is_inverted(torsion_id):
            return torsion_info

        with self._lock:
            torsion_info = self._torsions.get(torsion_id)

            if torsion_info is not None:
                return torsion_info

            base_info = self._torsions.get(self.normalize_id(torsion_id))

            if base_info is None:
                return None

            torsion_info = base_info.inverted()
            self._torsions[torsion_id] = torsion_info

        return torsion_info

    def _require(self, mode: TorsionMode):
        if not self._supported_modes & mode:
            raise TorsionDBError(
                f"The knowledge base has not been initialized with {mode!r}."
            )

    def get_torsions(self, torsion_id: Optional[str]) -> Optional[List[int]]:
        """Returns the full circle list of preferred torsion angles (0 <= angle <
        360) of a fragment, or ``None`` if the fragment is not known."""

        self._require(TorsionMode.ANGLES)

        torsion_info = self._torsion_info(torsion_id)
        return None if torsion_info is None else torsion_info.full_circle_angles()

    def get_torsion_ranges(
        self, torsion_id: Optional[str]
    ) -> Optional[List[Tuple[int, int]]]:
        """Returns the low and high limits of each preferred torsion angle, with
        indices matching ``get_torsions``, or ``None`` if the fragment is not
        known."""

        self._require(TorsionMode.RANGES)

        torsion_info = self._torsion_info(torsion_id)
        return None if torsion_info is None else torsion_info.full_circle_ranges()

    def get_torsion_frequencies(self, torsion_id: Optional[str]) -> Optional[List[int]]:
        """Returns the frequencies [%] of each preferred torsion angle, with indices
        matching ``get_torsions``, or ``None`` if the fragment is not known."""

        self._require(TorsionMode.FREQUENCIES)

        torsion_info = self._torsion_info(torsion_id)
        return None if torsion_info is None else torsion_info.full_circle_frequencies()

    def get_torsion_bins(self, torsion_id: Optional[str]) -> Optional[List[int]]:
        """Returns the 72 bin histogram of torsion angles, normalized so that the
        largest bin is 127, or ``None`` if the fragment is not known."""

        self._require(TorsionMode.BINS)

        torsion_info = self._torsion_info(torsion_id)
        return None if torsion_info is None else torsion_info.full_circle_bins()

    def torsion_strain_class(self, torsion_id: str, angle: float) -> TorsionStrain:
        """Classifies how strained a torsion angle is.

        Parameters
        ----------
        torsion_id
            The identifier of the fragment.
        angle
            The torsion angle [rad] in the range -pi <= angle <= pi.

        Returns
        -------
            ``GREEN`` if the angle falls within a preferred range, ``YELLOW`` if it
            falls within 5 degrees of one, ``RED`` otherwise, or ``NOT_FOUND`` if
            the fragment is not known.
        """

        ranges = self.get_torsion_ranges(self.normalize_id(torsion_id))

        if ranges is None:
            return TorsionStrain.NOT_FOUND

        strain = TorsionStrain.RED
        index = self.normalized_torsion_index(torsion_id, angle)

        for low, high in ranges:
            if low <= index <= high:
                return TorsionStrain.GREEN
            if low - 5 <= index <= high + 5:
                strain = TorsionStrain.YELLOW

        return strain

    @staticmethod
    def symmetry_type(torsion_id: str) -> TorsionSymmetry:
        if torsion_id.endswith("<") or torsion_id.endswith(">"):
            return TorsionSymmetry.C1C1_OR_C1D1
        if torsion_id.endswith("-") or torsion_id.endswith("+"):
            return TorsionSymmetry.C1D2
        if torsion_id.endswith("="):
            return TorsionSymmetry.D1D2_OR_D2D2

        return TorsionSymmetry.D1D1

    @staticmethod
    def is_inverted(torsion_id: str) -> bool:
        return torsion_id.endswith("<") or torsion_id.endswith("-")

    @staticmethod
    def normalize_id(torsion_id: str) -> str:
        if torsion_id.endswith("<"):
            return torsion_id[:-1] + ">"
        if torsion_id.endswith("-"):
            return torsion_id[:-1] + "+"

        return torsion_id

    @classmethod
    def normalized_torsion_index(cls, torsion_id: str, angle: float) -> int:
        """Maps a torsion angle [rad] onto the lowest symmetrically equivalent
        integer angle [deg] in the native range of the fragment's symmetry type."""

        if cls.is_inverted(torsion_id):
            angle = -angle

        index = int(math.floor(0.5 + math.degrees(angle)))

        if index == 180:
            index = -180

        symmetry = cls.symmetry_type(torsion_id)

        if symmetry == TorsionSymmetry.C1C1_OR_C1D1:
            if index < 0:
                index += 360
        elif symmetry == TorsionSymmetry.C1D2:
            if index < 0:
                index += 180
        elif symmetry == TorsionSymmetry.D1D1:
            index = abs(index)
        elif symmetry == TorsionSymmetry.D1D2_OR_D2D2:
            if index < 0:
                index += 180
            if index > 90:
                index = 180 - index

        return index


def _parse_integers(line: str) -> List[int]:
    return [int(value) for value in line.split(",")]


def _parse_ranges(line: str) -> List[Tuple[int, int]]:
    ranges = []

    for value in line.split(","):
        # skip a leading minus sign of a negative lower limit
        split_index = value.index("-", 1)
        ranges.append((int(value[:split_index]), int(value[split_index + 1 :])))

    return ranges
