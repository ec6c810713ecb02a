"""vmsetup: provision a research VM with an ordered, fail-fast pipeline."""

__version__ = "0.1.0"
