"""Data files shipped with the calculator (default weapon catalog)."""
