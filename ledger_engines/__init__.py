"""
Module: ledger_engines
Responsibility:
    Pure calculation layer: statutory return compilers, contribution
    arithmetic, compliance checks, scoring, anomaly detection and audit
    sampling.

Architecture position:
    Engines -- zero I/O.  Imports ledger_kernel.domain,
    ledger_kernel.exceptions and the ledger_config.schema rate tables;
    never ORM models, sessions, modules or services.  Inputs are
    frozen dataclasses built by the services layer.

Invariants enforced:
    - Engines never read the clock; dates are explicit parameters.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs produce identical outputs, including
      row order, so statutory returns are byte-identical on recompute.
"""
