"""Allow ``python -m metanorma_setup``."""

from metanorma_setup.main import cli

if __name__ == "__main__":
    cli()
