"""
Domain Services Package

Pure, synchronous engines of the reconciliation core. None of them performs
I/O; every input is passed in already materialized.
"""
