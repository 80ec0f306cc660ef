"""
Steam Web API access: HTTP client and account signal collection.
"""
