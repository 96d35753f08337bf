"""Control - lifecycle validation, agent selection and poll handling.

- validator: pure Lifecycle Validator (collects every violation)
- selector: query predicates and the Reconciliation Selector
- reconcile: agent poll handler (apply reports, select, stamp hand-off)

Submodules are imported directly; services depend on validator/selector and
reconcile depends on services.
"""
