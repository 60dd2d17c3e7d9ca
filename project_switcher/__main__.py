"""Entry point for the project-switcher CLI."""

import sys


def main() -> int:
    """Main entry point."""
    from project_switcher.cli.commands import cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
