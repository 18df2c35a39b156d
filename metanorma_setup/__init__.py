"""Metanorma setup — install the Metanorma toolchain in CI runners."""

__version__ = "1.0.0"
