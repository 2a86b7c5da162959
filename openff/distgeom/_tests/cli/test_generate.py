import json

import numpy
import pytest

from openff.distgeom.cli import generate as generate_module
from openff.distgeom.cli.generate import _generate_conformers
from openff.distgeom.cli.generate import generate as generate_cli
from openff.distgeom.conformers import ConformerGenerationError, ConformerSettings

pytest.importorskip("openff.toolkit")
pytest.importorskip("rdkit")


def test_generate_conformers():
    records = _generate_conformers(
        "CCO", ConformerSettings(max_conformers=2, seed=1234, n_workers=1)
    )

    assert [record.index for record in records] == [0, 1]
    assert all(record.smiles == "CCO" for record in records)

    for record in records:
        coordinates = numpy.array(record.coordinates)

        assert coordinates.shape == (3, 3)
        assert numpy.linalg.norm(coordinates[0] - coordinates[1]) == pytest.approx(
            1.50, abs=0.05
        )
        assert record.strain >= 0.0


def test_generate_conformers_failure(monkeypatch):
    def _raise(*_, **__):
        raise ConformerGenerationError("no conformers could be generated")

    monkeypatch.setattr(generate_module, "ConformationSampler", _raise)

    assert _generate_conformers("CCO", ConformerSettings()) == []


def test_generate(runner):
    with open("smiles.json", "w") as file:
        json.dump(["CCO", "c1ccccc1"], file)
    with open("conformer-settings.json", "w") as file:
        file.write(ConformerSettings(seed=1234).json())

    result = runner.invoke(
        generate_cli,
        ["--smiles", "smiles.json", "--conf-settings", "conformer-settings.json"],
    )

    if result.exit_code != 0:
        raise result.exception

    with open("conformers.json") as file:
        records = json.load(file)

    assert [record["smiles"] for record in records] == ["CCO", "c1ccccc1"]
    assert [len(record["coordinates"]) for record in records] == [3, 6]
