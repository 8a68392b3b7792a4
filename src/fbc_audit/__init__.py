"""fbc_audit: consistency checks and FROG reproducibility reports for metabolic models."""

__version__ = "0.1.0"
__url__ = "https://pypi.org/project/fbc-audit/"
