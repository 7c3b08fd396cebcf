"""
System settings: financial year, numbering counters, company profile,
branding assets and full-data backup / restore.
"""
