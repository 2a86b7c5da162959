import functools
import json
import logging
from multiprocessing import Pool
from typing import List

import click

from openff.distgeom._pydantic import BaseModel, Field
from openff.distgeom.conformers import ConformationSampler, ConformerSettings
from openff.distgeom.molecule import MoleculeGraph
from openff.distgeom.utilities.exceptions import DistGeomException
from openff.distgeom.utilities.molecule import smiles_to_molecule


class ConformerRecord(BaseModel):
    """A record of a single generated conformer of a molecule."""

    smiles: str = Field(..., description="The SMILES pattern of the molecule.")
    index: int = Field(..., description="The index of the conformer.")

    strain: float = Field(
        ..., description="The total constraint strain of the conformer."
    )
    coordinates: List[List[float]] = Field(
        ...,
        description="The coordinates [A] of the heavy atoms of the molecule, in the "
        "order they appear in the parsed molecule.",
    )


def _generate_conformers(
    smiles: str, conformer_settings: ConformerSettings
) -> List[ConformerRecord]:
    """Generate the conformers of a single molecule.

    Parameters
    ----------
    smiles
        The SMILES representation of the molecule.
    conformer_settings
        The settings to use when generating the conformers.
    """

    _logger = logging.getLogger(__name__)
    _logger.info(f"Processing {smiles}")

    molecule = smiles_to_molecule(smiles)
    graph = MoleculeGraph.from_openff(molecule)

    try:
        sampler = ConformationSampler(graph, conformer_settings)

        if conformer_settings.max_conformers == 1:
            conformers = [sampler.generate_conformer()]
        else:
            conformers = sampler.generate_conformers()
    except DistGeomException:
        _logger.exception(f"Coordinates could not be generated for {smiles}.")
        return []

    records = [
        ConformerRecord(
            smiles=smiles,
            index=index,
            strain=sampler.engine.strain_evaluator.total_strain(conformer),
            coordinates=conformer.to_array().tolist(),
        )
        for index, conformer in enumerate(conformers)
    ]

    _logger.info(f"Finished processing {smiles}")

    return records


@click.command(help="Generate conformers for a set of SMILES.")
@click.option(
    "--smiles",
    default="smiles.json",
    type=click.Path(exists=True, dir_okay=False),
    help="The path to a JSON file containing the set of SMILES patterns.",
    show_default=True,
)
@click.option(
    "--conf-settings",
    default="conformer-settings.json",
    type=click.Path(exists=True, dir_okay=False),
    help="The path to the JSON serialized conformer generation settings.",
    show_default=True,
)
@click.option(
    "--output",
    default="conformers.json",
    type=click.Path(dir_okay=False),
    help="The path to write the generated conformer records to.",
    show_default=True,
)
@click.option(
    "--n-procs",
    "n_processors",
    type=int,
    default=1,
    help="The number of processes to distribute the molecules across.",
    show_default=True,
)
def generate(smiles: str, conf_settings: str, output: str, n_processors: int):
    logging.basicConfig(level=logging.INFO)

    # Load in the SMILES patterns to generate conformers for.
    with open(smiles) as file:
        smiles = json.load(file)

    conformer_settings = ConformerSettings.parse_file(conf_settings)

    records = []

    with Pool(processes=n_processors) as pool:
        for molecule_records in pool.imap(
            functools.partial(
                _generate_conformers, conformer_settings=conformer_settings
            ),
            smiles,
        ):
            records.extend(molecule_records)

    with open(output, "w") as file:
        json.dump([record.dict() for record in records], file, indent=2)
