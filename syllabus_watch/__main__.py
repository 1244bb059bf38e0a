"""Allow ``python -m syllabus_watch``."""

from .app import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
