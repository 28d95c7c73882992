"""Entry point for ``python -m buildcache``."""

from .cli import main

if __name__ == "__main__":
    main()
