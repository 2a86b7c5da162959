"""Stochastically relax random coordinates against the constraints of a molecule.

Each step of the relaxation picks either a random pair of atoms or, less
frequently, a random geometric constraint and nudges the involved atoms towards
satisfying it. The size of each nudge is controlled by a cycle factor which
decays over the course of a relaxation phase.
"""
import logging
import math
from enum import Enum
from typing import List, Sequence

from openff.distgeom.conformers._conformer import Conformer, ThreadState
from openff.distgeom.conformers._settings import RelaxationSettings
from openff.distgeom.constraints import (
    ConstraintType,
    DistanceConstraintTable,
    GeometricConstraint,
)
from openff.distgeom.utilities.geometry import cross, dot, fit_line, fit_plane

_logger = logging.getLogger(__name__)

IDEAL_STEREO_COSINE = -math.cos(math.radians(109.47)) / 3.0
"""The height of the stereocenter above the plane of three of its neighbours per
unit neighbour distance, for an ideal tetrahedral arrangement."""

PLANE_CYCLE_FACTOR_SCALE = 0.5


class RelaxationPhase(Enum):
    Breakout = "breakout"
    WeakConstraints = "weak-constraints"
    Optimization = "optimization"
    Minimization = "minimization"


class StrainEvaluator:
    """Accumulates the squared violation of every enabled constraint onto the atoms
    involved in it."""

    def __init__(
        self,
        distance_constraints: DistanceConstraintTable,
        geometric_constraints: Sequence[GeometricConstraint],
    ):
        self._distance_constraints = distance_constraints
        self._geometric_constraints = tuple(geometric_constraints)

    def atom_strains(
        self, conformer: Conformer, disabled: Sequence[bool] = ()
    ) -> List[float]:
        """Computes the strain of each atom in a conformer.

        Parameters
        ----------
        conformer
            The conformer to evaluate.
        disabled
            Flags marking which of the geometric constraints to ignore.

        Returns
        -------
            The non-negative strain of each atom.
        """

        x, y, z = conformer.x, conformer.y, conformer.z
        n_atoms = conformer.n_atoms

        strain = [0.0] * n_atoms

        rows = self._distance_constraints.rows

        for atom_1 in range(1, n_atoms):
            row = rows[atom_1]

            for atom_2 in range(atom_1):
                dx = x[atom_2] - x[atom_1]
                dy = y[atom_2] - y[atom_1]
                dz = z[atom_2] - z[atom_1]

                distance = math.sqrt(dx * dx + dy * dy + dz * dz)
                lower, upper = row[atom_2].bounds_for(distance)

                if distance < lower:
                    violation = (lower - distance) / 2.0
                elif distance > upper:
                    violation = (distance - upper) / 2.0
                else:
                    continue

                strain[atom_1] += violation * violation
                strain[atom_2] += violation * violation

        for index, constraint in enumerate(self._geometric_constraints):
            if len(disabled) > 0 and disabled[index]:
                continue

            self._add_geometric_strain(conformer, constraint, strain)

        return strain

    @classmethod
    def _add_geometric_strain(
        cls,
        conformer: Conformer,
        constraint: GeometricConstraint,
        strain: List[float],
    ):
        points = [conformer.coordinates(atom) for atom in constraint.atoms]

        if constraint.type in (ConstraintType.Plane, ConstraintType.WeakPlane):
            fit = fit_plane(points)

            if fit is None:
                return

            center, normal = fit

            for atom, point in zip(constraint.atoms, points):
                distance = dot(normal, point) - dot(normal, center)
                strain[atom] += distance * distance

        elif constraint.type == ConstraintType.Line:
            fit = fit_line(points)

            if fit is None:
                return

            center, direction = fit

            for atom, point in zip(constraint.atoms, points):
                offset = [point[i] - center[i] for i in range(3)]
                projection = dot(direction, offset)

                strain[atom] += max(dot(offset, offset) - projection * projection, 0.0)

        elif constraint.type == ConstraintType.Stereo:
            if not _is_wrong_handedness(points):
                return

            for atom in constraint.atoms:
                strain[atom] += 0.25

        else:
            raise NotImplementedError()

    def total_strain(
        self, conformer: Conformer, disabled: Sequence[bool] = ()
    ) -> float:
        return sum(self.atom_strains(conformer, disabled))


def _is_wrong_handedness(points: Sequence[Sequence[float]]) -> bool:
    origin = points[0]

    vector_1 = [points[1][i] - origin[i] for i in range(3)]
    vector_2 = [points[2][i] - origin[i] for i in range(3)]
    vector_3 = [points[3][i] - origin[i] for i in range(3)]

    return dot(vector_3, cross(vector_1, vector_2)) > 0.0


class RelaxationEngine:
    """Generates conformers by relaxing random coordinates against a fixed set of
    distance and geometric constraints.

    The engine itself is stateless between calls so that a single instance can be
    shared between threads, with each thread supplying its own ``ThreadState``.
    """

    def __init__(
        self,
        distance_constraints: DistanceConstraintTable,
        geometric_constraints: Sequence[GeometricConstraint],
        settings: RelaxationSettings = None,
    ):
        self._distance_constraints = distance_constraints
        self._geometric_constraints = tuple(geometric_constraints)

        self._settings = settings if settings is not None else RelaxationSettings()
        self._strain_evaluator = StrainEvaluator(
            distance_constraints, geometric_constraints
        )

        self._n_atoms = distance_constraints.n_atoms

    @property
    def n_atoms(self) -> int:
        return self._n_atoms

    @property
    def settings(self) -> RelaxationSettings:
        return self._settings

    @property
    def strain_evaluator(self) -> StrainEvaluator:
        return self._strain_evaluator

    def create_state(self, seed=None) -> ThreadState:
        """Creates the scratch state that a worker needs to run this engine."""
        return ThreadState(len(self._geometric_constraints), seed)

    def atom_strains(self, conformer: Conformer, state: ThreadState) -> List[float]:
        """Returns the per-atom strain of a conformer, re-using the value cached on
        ``state`` when it is still valid."""

        if state.atom_strain is None:
            state.atom_strain = self._strain_evaluator.atom_strains(
                conformer, state.disabled
            )

        return state.atom_strain

    def generate(self, conformer: Conformer, state: ThreadState):
        """Places the atoms of ``conformer`` at random and relaxes them through the
        fixed sequence of relaxation phases."""

        settings = self._settings
        n_atoms = self._n_atoms

        standard = settings.standard_cycle_factor

        state.reset()

        _logger.debug(f"starting {RelaxationPhase.Breakout.value} phase")

        self.jumble(conformer, state, high_strain_only=False)

        breakout_cycles = n_atoms * settings.breakout_cycles_per_atom
        self.optimize(conformer, state, breakout_cycles, 2.0 * standard, standard)

        for _ in range(settings.breakout_rounds):
            if self.jumble(conformer, state, high_strain_only=True) == 0:
                break

            self.optimize(conformer, state, breakout_cycles, standard, standard)

        _logger.debug(f"starting {RelaxationPhase.WeakConstraints.value} phase")
        self.disable_conflicting_weak_constraints(conformer, state)

        _logger.debug(f"starting {RelaxationPhase.Optimization.value} phase")
        self.optimize(
            conformer,
            state,
            n_atoms * settings.optimization_cycles_per_atom,
            standard,
            standard,
        )

        _logger.debug(f"starting {RelaxationPhase.Minimization.value} phase")
        self.optimize(
            conformer,
            state,
            n_atoms * settings.minimization_cycles_per_atom,
            standard,
            standard / settings.minimization_reduction_factor,
        )

    def jumble(
        self, conformer: Conformer, state: ThreadState, high_strain_only: bool
    ) -> int:
        """Places atoms at random positions inside a box which grows with the size
        of the molecule.

        Parameters
        ----------
        conformer
            The conformer to modify in place.
        state
            The state of the calling worker.
        high_strain_only
            Whether to only move those atoms whose strain exceeds the breakout
            threshold.

        Returns
        -------
            The number of atoms that were moved.
        """

        box_size = 1.0 + 3.0 * math.sqrt(self._n_atoms)

        if high_strain_only:
            strain = self.atom_strains(conformer, state)
            atoms = [
                atom
                for atom in range(self._n_atoms)
                if strain[atom] > self._settings.atom_breakout_strain
            ]
        else:
            atoms = range(self._n_atoms)

        n_moved = 0

        for atom in atoms:
            conformer.x[atom] = box_size * state.random() - box_size / 2.0
            conformer.y[atom] = box_size * state.random() - box_size / 2.0
            conformer.z[atom] = box_size * state.random() - box_size / 2.0

            n_moved += 1

        if n_moved > 0:
            state.atom_strain = None

        return n_moved

    def disable_conflicting_weak_constraints(
        self, conformer: Conformer, state: ThreadState
    ) -> int:
        """Abandons each weak planarity constraint that any of its atoms is strained
        by, and nudges the atoms involved out of the plane.

        Returns
        -------
            The number of constraints that were disabled.
        """

        state.atom_strain = None
        strain = self.atom_strains(conformer, state)

        limit = self._settings.weak_constraint_strain_limit
        distortion = self._settings.weak_constraint_distortion

        n_disabled = 0

        for index, constraint in enumerate(self._geometric_constraints):
            if constraint.type != ConstraintType.WeakPlane or state.disabled[index]:
                continue

            if all(strain[atom] <= limit for atom in constraint.atoms):
                continue

            state.disabled[index] = True
            n_disabled += 1

            for atom in constraint.atoms:
                conformer.x[atom] += distortion * (2.0 * state.random() - 1.0)
                conformer.y[atom] += distortion * (2.0 * state.random() - 1.0)
                conformer.z[atom] += distortion * (2.0 * state.random() - 1.0)

        if n_disabled > 0:
            _logger.debug(f"disabled {n_disabled} weak planarity constraints")
            state.atom_strain = None

        return n_disabled

    def optimize(
        self,
        conformer: Conformer,
        state: ThreadState,
        cycles: int,
        start_factor: float,
        end_factor: float,
    ):
        """Runs a number of relaxation steps, exponentially decaying the cycle
        factor from ``start_factor`` to ``end_factor``."""

        n_atoms = self._n_atoms
        n_constraints = len(self._geometric_constraints)

        if cycles <= 0 or n_atoms < 2:
            return

        constraint_likelihood = (
            self._settings.geometric_constraint_likelihood * n_constraints / n_atoms
        )
        decay = math.log(start_factor / end_factor) / cycles

        random = state.random

        for cycle in range(cycles):
            cycle_factor = start_factor * math.exp(-decay * cycle)

            if n_constraints > 0 and random() < constraint_likelihood:
                index = int(random() * n_constraints)

                if not state.disabled[index]:
                    self.apply_geometric_constraint(
                        conformer, self._geometric_constraints[index], cycle_factor
                    )

                continue

            self.apply_distance_constraint(conformer, state, cycle_factor)

        state.atom_strain = None

    def apply_geometric_constraint(
        self,
        conformer: Conformer,
        constraint: GeometricConstraint,
        cycle_factor: float,
    ):
        if constraint.type in (ConstraintType.Plane, ConstraintType.WeakPlane):
            self.apply_plane_constraint(
                conformer, constraint.atoms, PLANE_CYCLE_FACTOR_SCALE * cycle_factor
            )
        elif constraint.type == ConstraintType.Line:
            self.apply_line_constraint(conformer, constraint.atoms, cycle_factor)
        elif constraint.type == ConstraintType.Stereo:
            self.apply_stereo_constraint(conformer, constraint.atoms)
        else:
            raise NotImplementedError()

    def apply_distance_constraint(
        self, conformer: Conformer, state: ThreadState, cycle_factor: float
    ):
        """Picks a random pair of atoms and moves both along the vector between them
        to reduce the violation of their distance constraint."""

        random = state.random

        atom_1 = int(random() * self._n_atoms)
        atom_2 = int(random() * self._n_atoms)

        while atom_2 == atom_1:
            atom_2 = int(random() * self._n_atoms)

        if atom_1 < atom_2:
            atom_1, atom_2 = atom_2, atom_1

        x, y, z = conformer.x, conformer.y, conformer.z

        dx = x[atom_2] - x[atom_1]
        dy = y[atom_2] - y[atom_1]
        dz = z[atom_2] - z[atom_1]

        distance = math.sqrt(dx * dx + dy * dy + dz * dz)

        entry = self._distance_constraints.rows[atom_1][atom_2]
        lower, upper = entry.bounds_for(distance)

        if distance < lower:
            factor = (distance - lower) / (2.0 * lower)
            # never move further apart than the full violation
            cycle_factor = min(cycle_factor, 1.0)
        elif distance > upper:
            factor = (distance - upper) / (2.0 * distance)
        else:
            return

        factor *= cycle_factor

        x[atom_1] += dx * factor
        y[atom_1] += dy * factor
        z[atom_1] += dz * factor

        x[atom_2] -= dx * factor
        y[atom_2] -= dy * factor
        z[atom_2] -= dz * factor

    @classmethod
    def apply_plane_constraint(
        cls, conformer: Conformer, atoms: Sequence[int], cycle_factor: float
    ):
        """Moves each atom towards the least-squares plane through all of them."""

        points = [conformer.coordinates(atom) for atom in atoms]
        fit = fit_plane(points)

        if fit is None:
            return

        center, normal = fit
        plane_offset = dot(normal, center)

        for atom, point in zip(atoms, points):
            shift = (plane_offset - dot(normal, point)) * cycle_factor

            conformer.x[atom] = point[0] + shift * normal[0]
            conformer.y[atom] = point[1] + shift * normal[1]
            conformer.z[atom] = point[2] + shift * normal[2]

    @classmethod
    def apply_line_constraint(
        cls, conformer: Conformer, atoms: Sequence[int], cycle_factor: float
    ):
        """Moves each atom towards the least-squares line through all of them."""

        points = [conformer.coordinates(atom) for atom in atoms]
        fit = fit_line(points)

        if fit is None:
            return

        center, direction = fit

        for atom, point in zip(atoms, points):
            projection = dot(direction, [point[i] - center[i] for i in range(3)])
            target = [center[i] + projection * direction[i] for i in range(3)]

            conformer.x[atom] = point[0] + cycle_factor * (target[0] - point[0])
            conformer.y[atom] = point[1] + cycle_factor * (target[1] - point[1])
            conformer.z[atom] = point[2] + cycle_factor * (target[2] - point[2])

    def apply_stereo_constraint(self, conformer: Conformer, atoms: Sequence[int]):
        """Inverts a stereocenter with the wrong handedness by pushing its last
        reference atom through the plane of the first three.

        ``atoms`` holds three reference atoms, then either the center itself or a
        fourth neighbor followed by the center.
        """

        points = [conformer.coordinates(atom) for atom in atoms[:4]]

        if not _is_wrong_handedness(points):
            return

        origin = points[0]
        normal = cross(
            [points[1][i] - origin[i] for i in range(3)],
            [points[2][i] - origin[i] for i in range(3)],
        )
        length = math.sqrt(dot(normal, normal))

        if length < 1.0e-12:
            return

        normal = [value / length for value in normal]
        distance = dot(normal, points[3]) - dot(normal, origin)

        center = atoms[-1]

        needed_distance = IDEAL_STEREO_COSINE * sum(
            self._distance_constraints.get(atom, center).lower
            for atom in atoms[:3]
        )
        if len(atoms) == 5:
            # the fourth neighbour sits opposite the plane of the other three
            needed_distance += self._distance_constraints.get(atoms[3], center).lower

        if distance < 0.0:
            movement = distance - needed_distance
        else:
            movement = distance + needed_distance

        for i, (atom, point) in enumerate(zip(atoms[:4], points)):
            factor = -0.75 * movement if i == 3 else 0.25 * movement

            conformer.x[atom] = point[0] + factor * normal[0]
            conformer.y[atom] = point[1] + factor * normal[1]
            conformer.z[atom] = point[2] + factor * normal[2]
