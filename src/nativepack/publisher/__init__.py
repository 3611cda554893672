"""Build, stage and package the checked-out project."""
