"""postguard command-line interface."""
