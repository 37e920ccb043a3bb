#!/usr/bin/env python3
"""
identiscan - Federated identity reconnaissance

Main entry point for running the CLI from a source checkout.

Usage:
    python main.py scan octocat
    python main.py scan octocat --adapter github --adapter reddit --output results.json
"""

from identiscan.cli import cli


if __name__ == '__main__':
    cli()
