"""Allow running as ``python -m mediate``."""

from mediate.cli.main import app

if __name__ == "__main__":
    app()
