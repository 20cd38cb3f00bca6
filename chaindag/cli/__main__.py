"""Allow running the CLI as ``python -m chaindag.cli``."""

if __name__ == "__main__":
    from chaindag.cli.main import main

    main()
