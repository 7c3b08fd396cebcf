"""
Activity trail.

Every successful mutation elsewhere in the suite records who did what here.
"""
