"""Allow running chaindag as ``python -m chaindag``."""

if __name__ == "__main__":
    from chaindag.cli.main import main

    main()
