"""A module for generating conformers for molecules."""
import logging
from typing import List, Optional, Tuple

from openff.units import Quantity

from openff.distgeom.conformers._conformer import Conformer, ThreadState
from openff.distgeom.conformers._driver import ParallelConformerDriver
from openff.distgeom.conformers._relaxation import RelaxationEngine
from openff.distgeom.conformers._settings import ConformerSettings
from openff.distgeom.conformers.exceptions import ConformerGenerationError
from openff.distgeom.constraints import (
    DistanceConstraintBuilder,
    DistanceConstraintTable,
    GeometricConstraint,
    LineConstraintBuilder,
    PlanarityConstraintBuilder,
    StereoConstraintBuilder,
)
from openff.distgeom.molecule import MoleculeGraph
from openff.distgeom.torsions import TorsionDB

_logger = logging.getLogger(__name__)


class ConformationSampler:
    """Generates conformers of a single molecule.

    The distance and geometric constraints of the molecule are compiled once on
    construction and shared by every conformer that is subsequently generated.

    Examples
    --------

    >>> sampler = ConformationSampler(graph, ConformerSettings(seed=1234))
    >>> sampler.generate_conformer()
    >>> coordinates = sampler.get_conformer(0)
    """

    def __init__(
        self,
        graph: MoleculeGraph,
        settings: Optional[ConformerSettings] = None,
        torsion_db: Optional[TorsionDB] = None,
    ):
        """

        Parameters
        ----------
        graph
            The molecule to generate conformers for.
        settings
            The settings to generate conformers according to.
        torsion_db
            The knowledge base to look the preferred torsions of rotatable bonds up
            in. By default the shipped knowledge base is used.
        """

        self._graph = graph
        self._settings = settings if settings is not None else ConformerSettings()

        self._distance_constraints = DistanceConstraintBuilder(
            graph, torsion_db
        ).build()

        geometric_constraints = PlanarityConstraintBuilder.build(graph)

        if self._settings.use_line_constraints:
            geometric_constraints.extend(LineConstraintBuilder.build(graph))
        if self._settings.use_stereo_constraints:
            geometric_constraints.extend(StereoConstraintBuilder.build(graph))

        self._geometric_constraints = tuple(geometric_constraints)
        _logger.debug(
            f"compiled {len(self._geometric_constraints)} geometric constraints for a "
            f"{graph.n_atoms} atom molecule"
        )

        self._engine = RelaxationEngine(
            self._distance_constraints,
            self._geometric_constraints,
            self._settings.relaxation,
        )

        self._conformers: Optional[List[Conformer]] = None
        self._state: Optional[ThreadState] = None

    @property
    def graph(self) -> MoleculeGraph:
        return self._graph

    @property
    def distance_constraints(self) -> DistanceConstraintTable:
        return self._distance_constraints

    @property
    def geometric_constraints(self) -> Tuple[GeometricConstraint, ...]:
        return self._geometric_constraints

    @property
    def engine(self) -> RelaxationEngine:
        return self._engine

    @property
    def conformers(self) -> List[Conformer]:
        """The most recently generated conformers."""

        if self._conformers is None:
            raise ConformerGenerationError("no conformers have been generated yet")

        return self._conformers

    def generate_conformer(self, seed: Optional[int] = None) -> Conformer:
        """Generates a single conformer on the calling thread, replacing any
        previously generated conformers.

        Parameters
        ----------
        seed
            The seed of the random number generator. Two calls with the same
            non-zero seed yield identical coordinates. If ``None`` the seed of the
            settings is used, and a seed of 0 draws from system entropy.
        """

        seed = self._settings.seed if seed is None else seed

        self._state = self._engine.create_state(seed)

        conformer = Conformer(self._graph.n_atoms)
        self._engine.generate(conformer, self._state)

        self._conformers = [conformer]
        return conformer

    def generate_conformers(
        self, n_conformers: Optional[int] = None, seed: Optional[int] = None
    ) -> List[Conformer]:
        """Generates a batch of conformers in parallel, replacing any previously
        generated conformers.

        Parameters
        ----------
        n_conformers
            The number of conformers to generate. By default
            ``settings.max_conformers``.
        seed
            A batch wide seed. By default the seed of the settings is used.
        """

        n_conformers = (
            self._settings.max_conformers if n_conformers is None else n_conformers
        )
        seed = self._settings.seed if seed is None else seed

        driver = ParallelConformerDriver(self._engine, self._settings.n_workers)

        self._state = None
        self._conformers = driver.generate(n_conformers, seed)

        return self._conformers

    def get_atom_x(self, conformer_index: int, atom_index: int) -> float:
        return self.conformers[conformer_index].x[atom_index]

    def get_atom_y(self, conformer_index: int, atom_index: int) -> float:
        return self.conformers[conformer_index].y[atom_index]

    def get_atom_z(self, conformer_index: int, atom_index: int) -> float:
        return self.conformers[conformer_index].z[atom_index]

    def get_conformer(self, conformer_index: int = 0) -> Quantity:
        """Returns the coordinates of a generated conformer with
        shape=(n_atoms, 3) and units of angstrom."""
        return self.conformers[conformer_index].to_quantity()

    def get_strain(self) -> float:
        """Returns the total strain of the first generated conformer. Geometric
        constraints that were abandoned while generating it by
        ``generate_conformer`` are not counted."""

        conformer = self.conformers[0]

        if self._state is None:
            return self._engine.strain_evaluator.total_strain(conformer)

        self._state.atom_strain = None
        return sum(self._engine.atom_strains(conformer, self._state))

    def boost_distance_constraints(self, conformer: Optional[Conformer] = None):
        """Widens the lower bounds of the distance constraints using the distances
        realised in a conformer, by default the first one generated. This must not
        be called while a batch is being generated."""

        conformer = conformer if conformer is not None else self.conformers[0]
        self._distance_constraints.boost(conformer)

    def optimize(self, cycles: int, start_factor: float, end_factor: float):
        """Continues relaxing the first generated conformer."""

        if self._state is None:
            self._state = self._engine.create_state(self._settings.seed)

        self._engine.optimize(
            self.conformers[0], self._state, cycles, start_factor, end_factor
        )


class ConformerGenerator:
    """A class to generate a set of conformers for a molecule according to
    a specified set of settings.
    """

    @classmethod
    def generate(
        cls,
        graph: MoleculeGraph,
        settings: ConformerSettings,
        torsion_db: Optional[TorsionDB] = None,
    ) -> List[Quantity]:
        """Generates a set of conformers for a given molecule.

        Parameters
        ----------
        graph
            The molecule to generate conformers for.
        settings
            The settings to generate the conformers according to.
        torsion_db
            An optional torsion knowledge base to use instead of the shipped one.

        Returns
        -------
            The coordinates of each conformer with shape=(n_atoms, 3).
        """

        sampler = ConformationSampler(graph, settings, torsion_db)

        if settings.max_conformers == 1:
            conformers = [sampler.generate_conformer()]
        else:
            conformers = sampler.generate_conformers()

        return [conformer.to_quantity() for conformer in conformers]
