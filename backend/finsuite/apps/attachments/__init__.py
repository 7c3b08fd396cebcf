"""
Supporting documents (receipts, invoices, bills) uploaded against sales,
expenses and rent/bills. Files live under `<data>/uploads/<area>/`.
"""
