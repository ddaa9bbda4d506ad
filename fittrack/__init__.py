"""FitTrack API package.

Fitness goal tracking backend: goals, time-stamped progress entries, and the
rule that keeps each goal's current value in step with its latest entry.
"""

__version__ = "0.1.0"
