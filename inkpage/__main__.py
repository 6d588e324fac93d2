"""Entry point for ``python -m inkpage``."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
