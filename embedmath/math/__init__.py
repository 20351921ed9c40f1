"""
Numerical algorithms for embedmath.
"""
