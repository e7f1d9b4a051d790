"""
Entry point for running BeaconSOV as a module.

Enables execution via:
    python -m beacon_sov [command] [options]

This is equivalent to running the installed CLI:
    beacon-sov [command] [options]

Examples:
    python -m beacon_sov --help
    python -m beacon_sov validate --config examples/project.yaml
    python -m beacon_sov analyze --config examples/project.yaml --mock
"""

from beacon_sov.cli import app

if __name__ == "__main__":
    app()
