"""
Entry point for 'python -m wallkeep' and the installed 'wallkeep' script. Subcommand discovery and
attachment happen in wallkeep.cli.main.
"""

from wallkeep.cli import main


if __name__ == "__main__":
    main()
