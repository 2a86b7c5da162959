from typing import Optional

from openff.distgeom._pydantic import (
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    confloat,
    conint,
)


class RelaxationSettings(BaseModel):
    """The constants which control the stochastic relaxation of a conformer."""

    breakout_rounds: conint(ge=0) = Field(
        5,
        description="The maximum number of times that highly strained atoms are "
        "re-placed at random and the structure re-relaxed.",
    )
    breakout_cycles_per_atom: conint(ge=0) = Field(
        1000,
        description="The number of relaxation steps per atom of each breakout round.",
    )
    optimization_cycles_per_atom: conint(ge=0) = Field(
        2000, description="The number of relaxation steps per atom of the main pass."
    )
    minimization_cycles_per_atom: conint(ge=0) = Field(
        500,
        description="The number of relaxation steps per atom of the final pass, "
        "during which the cycle factor decays.",
    )

    standard_cycle_factor: PositiveFloat = Field(
        0.2, description="The fraction of a violation corrected per step."
    )
    minimization_reduction_factor: PositiveFloat = Field(
        20.0,
        description="The factor the cycle factor is reduced by over the course of "
        "the final pass.",
    )

    atom_breakout_strain: PositiveFloat = Field(
        0.02,
        description="The strain above which an atom is re-placed during a breakout "
        "round.",
    )
    weak_constraint_strain_limit: PositiveFloat = Field(
        0.02,
        description="The strain of any member atom above which a weak planarity "
        "constraint is abandoned.",
    )
    weak_constraint_distortion: confloat(ge=0.0) = Field(
        0.5,
        description="The maximum displacement [A] applied along each axis to the "
        "atoms of an abandoned weak planarity constraint.",
    )
    geometric_constraint_likelihood: confloat(ge=0.0) = Field(
        0.05,
        description="Scales how often a geometric rather than a distance constraint "
        "is enforced, relative to the number of geometric constraints per atom.",
    )


class ConformerSettings(BaseModel):
    """The settings to use when generating conformers for a particular molecule."""

    max_conformers: PositiveInt = Field(
        1, description="The number of conformers to generate."
    )
    seed: conint(ge=0) = Field(
        0,
        description="The seed of the random number generator. A seed of 0 draws the "
        "seed from system entropy so that repeated runs differ.",
    )
    n_workers: Optional[PositiveInt] = Field(
        None,
        description="The maximum number of threads to generate conformers with. "
        "By default the number of available CPUs is used.",
    )

    use_line_constraints: bool = Field(
        False, description="Whether to keep chains of sp atoms linear."
    )
    use_stereo_constraints: bool = Field(
        False,
        description="Whether to enforce the declared configuration of tetrahedral "
        "stereocenters.",
    )

    relaxation: RelaxationSettings = Field(
        RelaxationSettings(), description="The settings of the relaxation engine."
    )
