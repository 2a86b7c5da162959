"""Generate reasonable 3D conformers for molecules"""

from openff.distgeom.conformers._conformer import Conformer, ThreadState
from openff.distgeom.conformers._conformers import (
    ConformationSampler,
    ConformerGenerator,
)
from openff.distgeom.conformers._driver import ParallelConformerDriver
from openff.distgeom.conformers._relaxation import (
    RelaxationEngine,
    RelaxationPhase,
    StrainEvaluator,
)
from openff.distgeom.conformers._settings import ConformerSettings, RelaxationSettings
from openff.distgeom.conformers.exceptions import ConformerGenerationError

__all__ = [
    "ConformationSampler",
    "Conformer",
    "ConformerGenerationError",
    "ConformerGenerator",
    "ConformerSettings",
    "ParallelConformerDriver",
    "RelaxationEngine",
    "RelaxationPhase",
    "RelaxationSettings",
    "StrainEvaluator",
    "ThreadState",
]
