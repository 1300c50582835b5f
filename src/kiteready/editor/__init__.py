"""Editor integration helpers."""
