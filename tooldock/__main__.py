"""
tooldock - a lightweight plugin-based CLI toolkit

Install plugins from the tooldock registry and run them as subcommands.

Quick Start:
    pip install -e .
    tooldock plugin list
    tooldock plugin install <name>
    tooldock <name> [args...]
"""

from tooldock.cli.cli import main

if __name__ == "__main__":
    main()
