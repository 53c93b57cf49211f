"""Allows ``python -m epochdb_builder``."""
from epochdb_builder.main import cli_main


if __name__ == "__main__":
    cli_main()
