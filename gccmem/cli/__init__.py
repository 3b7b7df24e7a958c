"""CLI module for gccmem."""
