"""
Cache package for the Authorization Service.

Provides a Redis-backed cache holding the last authorization decision per
account and the per-rule "already alerted" flags that debounce alerts.
Every cache failure degrades to a miss or a no-op.
"""
