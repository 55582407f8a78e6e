"""Allow running orchext as a module: python -m orchext."""

from orchext.cli.cli import main

if __name__ == "__main__":
    main()
