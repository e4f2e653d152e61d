"""Module entrypoint for ``python -m contextpicker``."""

from .cli import main


if __name__ == "__main__":
    main()
