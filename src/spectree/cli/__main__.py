"""Enables running the CLI via: python -m spectree.cli"""

from spectree.cli.main import cli

if __name__ == "__main__":
    cli()
