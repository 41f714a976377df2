"""Core colocalization: regions, comparators, bucketed matching, intensities."""
