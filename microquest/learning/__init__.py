"""Learning - calibrate future estimates from observed behaviour

Components:
    pacing.py: rolling actual/estimated duration ratio fed back into the
        decomposition request
"""

# Number of recent completions averaged into the accuracy ratio
DEFAULT_PACING_WINDOW = 5

__all__ = ["DEFAULT_PACING_WINDOW"]
