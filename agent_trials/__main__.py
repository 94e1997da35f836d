"""
Entry point for running Agent Trials as a module.

Usage:
    python -m agent_trials run tests/ --agents fleet.yaml
    python -m agent_trials list tests/
    python -m agent_trials validate tests/
"""

from .cli import main

if __name__ == "__main__":
    main()
