"""Host inspection: operating system detection and installed packages."""
