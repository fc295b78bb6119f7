"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the stable unit engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Double-entry accounting on the world-state ledger
2. atomicity.py - Failed operations leave no trace
3. solvency.py - Collateral value always covers the stable supply
4. health_invariants.py - Health factor and conversion properties

These tests use hypothesis for property-based testing.
"""
