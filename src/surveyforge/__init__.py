"""Template composition, prompt compilation and feasibility estimation for survey design."""

__version__ = "0.3.0"
