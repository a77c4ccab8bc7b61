#!/usr/bin/env python3

import click

from gitpipeline.commands.fetch import in_handler


@click.group()
@click.version_option(package_name='gitpipeline')
def cli():
    """gitpipeline - CI resource that fetches a git repository and keeps its pipelines.

    Clones the repository, reports the resolved version, then replaces the
    checkout with the pipeline configs that apply to the cloned branch.
    """
    pass


cli.add_command(in_handler, name='in')


def main():
    cli()


def in_main():
    """Entry point for a bare `in` executable (e.g. /opt/resource/in)."""
    in_handler()


if __name__ == "__main__":
    main()
