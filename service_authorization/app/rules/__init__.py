"""
Rules engine package.

Defines the rule variants and the evaluation engine used by the
Authorization Service. Each configured rule tests one account signal;
the engine applies per-account ignore/force overrides, produces one flag
per applicable rule, and folds fixed outcomes into a single decision.

Modules of interest:
- models: Rule variants, signals, overrides, flags and decisions.
- engine: Applicability, condition tests and aggregation.
- policy: YAML policy loading and validation.
"""
