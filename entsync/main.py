#!/usr/bin/env python3
"""
Main entry point for the entsync application.
"""
from .cli.engine_cli import cli


def main():
    """Main function: dispatch to the command group."""
    cli(prog_name="entsync")


if __name__ == "__main__":
    main()
