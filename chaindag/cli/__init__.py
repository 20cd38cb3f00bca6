"""chaindag command line interface."""
