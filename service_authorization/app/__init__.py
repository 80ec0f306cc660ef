"""
Authorization Service package for Open Authorization.

This package decides whether a Steam account may use the downstream
application, based on account-reputation signals from the Steam Web API
and a configured rule set. It provides:

- app.main: HTTP surface (single authorization query, health, metrics).
- app.authorizer: The evaluation pipeline from identifier to outcome.
- app.identifiers: Steam identifier parsing and canonicalization.
- app.steam: Steam Web API client and signal collection.
- app.rules: Rule variants, evaluation engine, and policy loading.
- app.cache: Redis-backed decision and alert-flag cache.
- app.alerts: Slack / log notifiers for flagged and denied accounts.

Guidelines:
- The service is stateless; the cache is the only shared state.
- Cache and notifier failures never fail a request.
- Rules are evaluated sequentially in declaration order.
"""
