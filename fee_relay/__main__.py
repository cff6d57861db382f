"""
Entry point for running the CLI as a module.

Usage:
    python -m fee_relay
"""

from fee_relay.cli import main

if __name__ == "__main__":
    main()
