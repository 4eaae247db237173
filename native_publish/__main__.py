"""Allow running as ``python -m native_publish``."""

from native_publish.cli import app

if __name__ == "__main__":
    app()
