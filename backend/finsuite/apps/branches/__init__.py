"""
Branches (outlets) and their headline performance.
"""
