"""
Operator alerts for flagged or denied accounts.
"""
