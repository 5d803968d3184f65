#!/usr/bin/env python3
"""
Main entry point for the swissplan CLI application.
"""

from swissplan.cli import app

if __name__ == "__main__":
    app()
