"""
Daily branch sales with cash / bank / credit split, bank deposit posting
and automatic receivables for the credit portion.
"""
