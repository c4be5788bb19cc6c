"""PredResolve - multi-source consensus resolution for prediction-market questions."""

__version__ = "0.1.0"
