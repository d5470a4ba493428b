"""
Integration Tests Package

Test harness for the enforcer layers, from outline export to report.

TEST AXIOMS:
=============
1. Determinism: same store + same idea = structurally equal report
2. Errors are data: blank input never raises
3. Permissive write, strict complete
"""
