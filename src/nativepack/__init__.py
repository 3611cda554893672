"""nativepack — build native projects into Debian and RPM packages."""

__version__ = "0.4.0"
