"""State layer.

This package is the single source of truth for how a fetched feed and
locally applied mutations combine into one immutable inventory snapshot.
"""
