import click

from openff.distgeom.cli.generate import generate


@click.group()
def cli():
    """The root CLI group for all ``openff-distgeom`` commands"""


cli.add_command(generate)
