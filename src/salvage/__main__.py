"""Entry point module for executing Salvage as a Python module.

This module enables running Salvage via `python -m salvage`, which
delegates to the CLI main function.
"""

from salvage.cli import main

if __name__ == "__main__":
    main()
